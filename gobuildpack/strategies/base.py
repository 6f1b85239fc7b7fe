import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..cli_logger import logger
from ..errors import BuildFailure, ConfigWarning
from ..utils import run_shell_command

# Install target used when nothing else names one
DEFAULT_PACKAGE = "."

BUILD_TAG = "heroku"


@dataclass(frozen=True)
class PackageSpec:
    targets: tuple
    source: str

    @property
    def is_default(self):
        return self.source == "default"


class BuildLayout:
    """Where the toolchain, GOPATH, caches and binaries live inside the build dir."""

    def __init__(self, build_dir, module_cache_in_gopath=False):
        self.build_dir = os.path.abspath(build_dir)
        self.root = os.path.join(self.build_dir, ".gobuildpack")
        self.go_root = os.path.join(self.root, "go")
        self.tool_bin = os.path.join(self.root, "bin")
        self.gopath = os.path.join(self.root, "gopath")
        self.gocache = os.path.join(self.root, "gocache")
        self.bin_dir = os.path.join(self.build_dir, "bin")
        if module_cache_in_gopath:
            self.module_cache = os.path.join(self.gopath, "pkg", "mod")
        else:
            self.module_cache = os.path.join(self.root, "modcache")

    def relative(self, path):
        return os.path.relpath(path, self.build_dir)

    def default_cache_directories(self):
        return (self.relative(self.module_cache), self.relative(self.gocache))

    def env(self, extra=None):
        env = os.environ.copy()
        env["GOROOT"] = self.go_root
        env["GOPATH"] = self.gopath
        env["GOCACHE"] = self.gocache
        env["GOMODCACHE"] = self.module_cache
        env["GOBIN"] = self.bin_dir
        env["PATH"] = os.pathsep.join(
            [os.path.join(self.go_root, "bin"), self.tool_bin, env.get("PATH", "")]
        )
        if extra:
            env.update(extra)
        return env


def build_flags(config):
    """Flags passed to every build: the build tag, plus -X when symbol and value are both set."""
    flags = ["-tags", BUILD_TAG]
    if config.linker_symbol and config.linker_value:
        flags += ["-ldflags", f"-X {config.linker_symbol}={config.linker_value}"]
    return flags


def run_command(command, env=None, cwd=None, description=None):
    """Run a command, echoing its output, and raise BuildFailure if it exits non-zero."""
    logger.step_info(f"Running: {' '.join(command)}")
    lines, process = run_shell_command(command, env=env, cwd=cwd)
    output = []
    for line in lines:
        output.append(line)
        if line.strip():
            logger.step_info(line.rstrip())
    if process.returncode != 0:
        raise BuildFailure(
            f"{description or command[0]} failed (exit code {process.returncode})",
            command=command,
            returncode=process.returncode,
            output="".join(output),
        )
    return "".join(output)


def run_hook(hook_path, env=None, cwd=None):
    """Make the hook executable and run it; a failing hook fails the build."""
    mode = os.stat(hook_path).st_mode
    os.chmod(hook_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return run_command([hook_path], env=env, cwd=cwd, description=os.path.basename(hook_path))


class StrategyExecutor(ABC):
    """Install, sync and build logic for one dependency-management tool."""

    strategy = None
    # Extra binary the strategy needs besides go, installed into BuildLayout.tool_bin
    tool_name = None
    minimum_go = "go1.0"

    def __init__(self, layout, config, warn=None):
        self.layout = layout
        self.config = config
        self.warn = warn or logger.warning

    def package_manager_version(self, tool_version):
        return f"{self.strategy.value}@{tool_version or 'builtin'}"

    def go_version(self, manifest):
        """Go version requested by the tool's metadata, or None."""
        return None

    def configured_packages(self, manifest):
        """Install targets named in the tool's own metadata."""
        return []

    def metadata(self, read, manifest, default=None):
        """Call a metadata reader; a malformed tool file becomes a warning and the default."""
        try:
            return read(manifest)
        except ConfigWarning as e:
            self.warn(str(e))
            return default

    def resolve_package_spec(self, manifest, override=()):
        if override:
            return PackageSpec(tuple(override), "override")
        configured = self.metadata(self.configured_packages, manifest, default=[])
        if configured:
            return PackageSpec(tuple(configured), "config")
        detected = manifest.main_packages()
        if detected:
            return PackageSpec(tuple(detected), "detected")
        return PackageSpec((DEFAULT_PACKAGE,), "default")

    def workspace(self, manifest):
        """Directory the tool runs in."""
        return manifest.build_dir

    def env(self, extra=None):
        return self.layout.env(extra)

    def prepare_dependencies(self, manifest, env):
        """Sync or vendor dependencies. Returns True if a sync step ran."""
        return False

    @abstractmethod
    def build(self, manifest, spec, flags, env):
        """Compile spec's targets into the layout's bin dir."""


class GopathExecutor(StrategyExecutor):
    """Base for tools that need the app linked into $GOPATH/src/<import path>."""

    def import_path(self, manifest):
        return ""

    def workspace(self, manifest):
        if getattr(self, "_workspace", None):
            return self._workspace
        name = self.metadata(self.import_path, manifest, default="")
        if name and (name.startswith("/") or ".." in name.split("/")):
            self.warn(f"Ignoring import path '{name}': it must not be absolute or contain '..'.")
            name = ""
        if not name:
            name = os.path.basename(manifest.build_dir)
            self.warn(f"No import path configured for {self.strategy.value}; using '{name}'.")
        link = os.path.join(self.layout.gopath, "src", *name.split("/"))
        if not os.path.islink(link):
            os.makedirs(os.path.dirname(link), exist_ok=True)
            if os.path.lexists(link):
                raise BuildFailure(f"{link} exists and is not a link to the app")
            os.symlink(manifest.build_dir, link)
        self._workspace = link
        return link

    def env(self, extra=None):
        env = super().env(extra)
        env["GO111MODULE"] = "off"
        return env

    def build(self, manifest, spec, flags, env):
        run_command(
            ["go", "install", *flags, *spec.targets],
            env=env,
            cwd=self.workspace(manifest),
            description="go install",
        )
