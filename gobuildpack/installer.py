import os
import re
import shutil
import requests
from packaging.version import InvalidVersion, Version

from .cli_logger import logger
from .errors import InstallError
from .utils import download, download_and_extract

GO_RELEASES_URL = "https://go.dev/dl/?mode=json&include=all"
GO_DOWNLOAD_URL = "https://dl.google.com/go/{version}.linux-amd64.tar.gz"

# Binary tools: download url, whether it is a tarball, and the binary's path inside it
TOOLS = {
    "dep": {
        "version": "v0.5.4",
        "url": "https://github.com/golang/dep/releases/download/{version}/dep-linux-amd64",
    },
    "godep": {
        "version": "v80",
        "url": "https://github.com/tools/godep/releases/download/{version}/godep_linux_amd64",
    },
    "govendor": {
        "version": "v1.0.9",
        "url": "https://github.com/kardianos/govendor/releases/download/{version}/govendor_linux_amd64",
    },
    "glide": {
        "version": "v0.13.3",
        "url": "https://github.com/Masterminds/glide/releases/download/{version}/glide-{version}-linux-amd64.tar.gz",
        "member": os.path.join("linux-amd64", "glide"),
    },
    "gb": {
        "version": "v0.4.4",
        "url": "https://github.com/constabulary/gb/releases/download/{version}/gb-{bare}-linux-amd64.tar.gz",
        "member": os.path.join("bin", "gb"),
    },
}

_GO_VERSION = re.compile(r"^(?:go)?(\d+(?:\.\d+){0,2}(?:(?:rc|beta)\d+)?)$")


def normalize_go_version(spec):
    """Return 'go1.x[.y]' for '1.x', 'go1.x' or 'go 1.x'; raise InstallError otherwise."""
    cleaned = (spec or "").strip().replace(" ", "")
    match = _GO_VERSION.match(cleaned)
    if not match:
        raise InstallError("go", spec, "not a valid Go version")
    return f"go{match.group(1)}"


def go_version_key(version):
    try:
        return Version(version[2:] if version.startswith("go") else version)
    except InvalidVersion:
        return Version("0")


def _get_available_go_versions():
    """Get released Go versions from the go.dev release feed, newest first."""
    try:
        resp = requests.get(GO_RELEASES_URL, timeout=30)
        resp.raise_for_status()
        releases = resp.json()
        return [r["version"] for r in releases if r.get("stable", True) and "version" in r]
    except requests.exceptions.RequestException as e:
        logger.warning(f"Could not fetch the Go release list: {e}")
        return []
    except (KeyError, TypeError, ValueError):
        logger.warning("Could not parse the Go release list.")
        return []


def resolve_go_version(spec, available=None):
    """Resolve 'go1.22' to the newest matching release such as 'go1.22.5'.

    A spec with a patch level is returned unchanged. Without a release list
    the normalized spec is used as-is.
    """
    version = normalize_go_version(spec)
    if version.count(".") >= 2:
        return version
    if available is None:
        available = _get_available_go_versions()
    prefix = version + "."
    matches = [v for v in available if v == version or v.startswith(prefix)]
    if not matches:
        if available:
            raise InstallError("go", spec, "no matching Go release")
        return version
    return max(matches, key=go_version_key)


def require_minimum_go(version, minimum, reason):
    if go_version_key(version) < go_version_key(minimum):
        raise InstallError("go", version, f"{reason} requires {minimum} or newer")


class Installer:
    """Fetches the Go toolchain and dependency tools into a destination directory."""

    def install(self, tool_name, version_spec, dest_path):
        """Install tool_name at version_spec into dest_path and return the installed version."""
        if tool_name == "go":
            return self._install_go(version_spec, dest_path)
        if tool_name in TOOLS:
            return self._install_tool(tool_name, version_spec or TOOLS[tool_name]["version"], dest_path)
        raise InstallError(tool_name, version_spec, "unknown tool")

    def _install_go(self, version_spec, dest_path):
        version = resolve_go_version(version_spec)
        version_file = os.path.join(dest_path, "VERSION")
        if os.path.exists(version_file):
            with open(version_file, "r") as f:
                installed = f.readline().strip()
            if installed == version:
                logger.step_info(f"Go {version} is already installed. Skipping.")
                return version
            shutil.rmtree(dest_path, ignore_errors=True)

        logger.step_info(f"Installing Go {version}")
        url = GO_DOWNLOAD_URL.format(version=version)
        try:
            download_and_extract(url, dest_path, strip_components=1)
        except requests.exceptions.RequestException as e:
            raise InstallError("go", version, f"download failed: {e}") from e
        except (IOError, OSError) as e:
            raise InstallError("go", version, f"extraction failed: {e}") from e

        if not os.path.exists(os.path.join(dest_path, "bin", "go")):
            raise InstallError("go", version, f"bin/go missing after extracting {url}")
        return version

    def _install_tool(self, tool_name, version, dest_path):
        tool = TOOLS[tool_name]
        binary = os.path.join(dest_path, tool_name)
        stamp = binary + ".version"
        if os.path.exists(binary) and os.path.exists(stamp):
            with open(stamp, "r") as f:
                if f.read().strip() == version:
                    logger.step_info(f"{tool_name} {version} is already installed. Skipping.")
                    return version

        logger.step_info(f"Installing {tool_name} {version}")
        url = tool["url"].format(version=version, bare=version.lstrip("v"))
        try:
            if "member" in tool:
                staging = os.path.join(dest_path, f".{tool_name}-{version}")
                download_and_extract(url, staging)
                shutil.move(os.path.join(staging, tool["member"]), binary)
                shutil.rmtree(staging, ignore_errors=True)
            else:
                download(url, binary)
            os.chmod(binary, 0o755)
            with open(stamp, "w") as f:
                f.write(version)
        except requests.exceptions.RequestException as e:
            raise InstallError(tool_name, version, f"download failed: {e}") from e
        except (IOError, OSError, shutil.Error) as e:
            raise InstallError(tool_name, version, str(e)) from e
        return version
