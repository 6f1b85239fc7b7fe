import json
import os
import re

import toml
import yaml

from .errors import ConfigWarning

GO_MOD = "go.mod"
GOPKG_LOCK = "Gopkg.lock"
GOPKG_TOML = "Gopkg.toml"
GODEPS_JSON = os.path.join("Godeps", "Godeps.json")
VENDOR_JSON = os.path.join("vendor", "vendor.json")
VENDOR_MODULES = os.path.join("vendor", "modules.txt")
GLIDE_YAML = "glide.yaml"
WORKSPACE_SRC = "src"

PRE_COMPILE_HOOK = os.path.join("bin", "go-pre-compile")
POST_COMPILE_HOOK = os.path.join("bin", "go-post-compile")

# Directories never scanned for Go sources
SKIP_DIRS = {"vendor", "testdata", "node_modules", "Godeps"}

_HEROKU_DIRECTIVE = re.compile(r"^//\s*\+heroku\s+(\w+)\s+(.+)$")
_PACKAGE_MAIN = re.compile(r"^\s*package\s+main\b", re.MULTILINE)


class ProjectManifest:
    """Read-only view of the marker files and build metadata in a Go project.

    Parsed files are cached; nothing here writes to the build directory.
    """

    def __init__(self, build_dir):
        self.build_dir = os.path.abspath(build_dir)
        self._cache = {}

    def path(self, *parts):
        return os.path.join(self.build_dir, *parts)

    def has(self, relative_path):
        return os.path.exists(self.path(relative_path))

    def _memo(self, key, loader):
        if key not in self._cache:
            self._cache[key] = loader()
        return self._cache[key]

    def _read_text(self, relative_path):
        try:
            with open(self.path(relative_path), "r", encoding="utf-8") as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise ConfigWarning(f"{relative_path} is not valid UTF-8: {e}") from e

    # -------------------- go.mod --------------------

    def go_mod(self):
        """Return module path, go directive and `// +heroku` directives from go.mod."""
        return self._memo("go_mod", self._parse_go_mod)

    def _parse_go_mod(self):
        result = {"module": "", "go": "", "heroku": {}}
        if not self.has(GO_MOD):
            return result
        for line in self._read_text(GO_MOD).splitlines():
            stripped = line.strip()
            directive = _HEROKU_DIRECTIVE.match(stripped)
            if directive:
                result["heroku"][directive.group(1)] = directive.group(2).strip()
            elif stripped.startswith("module "):
                result["module"] = stripped[len("module "):].strip().strip('"')
            elif stripped.startswith("go ") and not result["go"]:
                result["go"] = stripped[len("go "):].strip()
        return result

    # -------------------- dep --------------------

    def gopkg(self):
        return self._memo("gopkg", self._parse_gopkg)

    def _parse_gopkg(self):
        if not self.has(GOPKG_TOML):
            return {}
        try:
            return toml.loads(self._read_text(GOPKG_TOML))
        except toml.TomlDecodeError as e:
            raise ConfigWarning(f"{GOPKG_TOML} could not be parsed: {e}") from e

    def gopkg_heroku(self):
        return self.gopkg().get("metadata", {}).get("heroku", {})

    # -------------------- godep / govendor --------------------

    def _load_json(self, relative_path):
        if not self.has(relative_path):
            return {}
        try:
            return json.loads(self._read_text(relative_path))
        except ValueError as e:
            raise ConfigWarning(f"{relative_path} is not valid JSON: {e}") from e

    def godeps(self):
        return self._memo("godeps", lambda: self._load_json(GODEPS_JSON))

    def vendor_json(self):
        return self._memo("vendor_json", lambda: self._load_json(VENDOR_JSON))

    # -------------------- glide --------------------

    def glide(self):
        return self._memo("glide", self._parse_glide)

    def _parse_glide(self):
        if not self.has(GLIDE_YAML):
            return {}
        try:
            return yaml.safe_load(self._read_text(GLIDE_YAML)) or {}
        except yaml.YAMLError as e:
            raise ConfigWarning(f"{GLIDE_YAML} could not be parsed: {e}") from e

    # -------------------- sources --------------------

    def has_root_go_sources(self):
        try:
            return any(name.endswith(".go") for name in os.listdir(self.build_dir))
        except OSError:
            return False

    def has_workspace_sources(self):
        """True when src/ holds .go files anywhere below it (gb layout)."""
        src = self.path(WORKSPACE_SRC)
        if not os.path.isdir(src):
            return False
        for _, _, files in os.walk(src):
            if any(f.endswith(".go") for f in files):
                return True
        return False

    def has_vendored_modules(self):
        return self.has(VENDOR_MODULES)

    def main_packages(self):
        """Relative directories (./cmd/x, or .) whose non-test .go files declare package main."""
        return self._memo("main_packages", self._find_main_packages)

    def _find_main_packages(self):
        found = []
        for root, dirs, files in os.walk(self.build_dir):
            dirs[:] = sorted(
                d for d in dirs
                if d not in SKIP_DIRS and not d.startswith((".", "_"))
            )
            for name in sorted(files):
                if not name.endswith(".go") or name.endswith("_test.go"):
                    continue
                try:
                    with open(os.path.join(root, name), "r", encoding="utf-8", errors="replace") as f:
                        head = f.read(4096)
                except OSError:
                    continue
                if _PACKAGE_MAIN.search(head):
                    rel = os.path.relpath(root, self.build_dir)
                    found.append("." if rel == "." else "./" + rel.replace(os.sep, "/"))
                    break
        return found

    def hook(self, relative_path):
        """Absolute path of a hook script, or None if the project does not ship it."""
        hook_path = self.path(relative_path)
        return hook_path if os.path.isfile(hook_path) else None
