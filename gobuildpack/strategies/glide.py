from ..detector import ToolStrategy
from .base import GopathExecutor, run_command


class GlideExecutor(GopathExecutor):
    """glide: glide.yaml names the package; dependencies via `glide install`."""

    strategy = ToolStrategy.GLIDE
    tool_name = "glide"
    minimum_go = "go1.6"

    def import_path(self, manifest):
        return manifest.glide().get("package", "")

    def prepare_dependencies(self, manifest, env):
        run_command(["glide", "install"], env=env, cwd=self.workspace(manifest),
                    description="glide install")
        return True
