import os

from ..detector import ToolStrategy
from .base import GopathExecutor, run_command


class GodepExecutor(GopathExecutor):
    """godep: Godeps/Godeps.json, dependencies in vendor/ or Godeps/_workspace."""

    strategy = ToolStrategy.GODEP
    tool_name = "godep"

    def import_path(self, manifest):
        return manifest.godeps().get("ImportPath", "")

    def go_version(self, manifest):
        return manifest.godeps().get("GoVersion") or None

    def configured_packages(self, manifest):
        return list(manifest.godeps().get("Packages") or [])

    def build(self, manifest, spec, flags, env):
        if os.path.isdir(manifest.path("vendor")):
            super().build(manifest, spec, flags, env)
            return
        run_command(["godep", "go", "install", *flags, *spec.targets], env=env,
                    cwd=self.workspace(manifest), description="godep go install")
