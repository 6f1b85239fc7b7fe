from ..cli_logger import logger
from ..detector import ToolStrategy
from .base import GopathExecutor, run_command


def _as_list(value):
    if isinstance(value, str):
        return value.split()
    return list(value or [])


def _is_false(value):
    return value is False or str(value).strip().lower() == "false"


class DepExecutor(GopathExecutor):
    """dep: Gopkg.lock/Gopkg.toml, settings under [metadata.heroku]."""

    strategy = ToolStrategy.DEP
    tool_name = "dep"
    minimum_go = "go1.9"

    def import_path(self, manifest):
        return manifest.gopkg_heroku().get("root-package", "")

    def go_version(self, manifest):
        return manifest.gopkg_heroku().get("go-version") or None

    def configured_packages(self, manifest):
        return _as_list(manifest.gopkg_heroku().get("install"))

    def prepare_dependencies(self, manifest, env):
        if _is_false(manifest.gopkg_heroku().get("ensure", True)):
            logger.step_info("Skipping dep ensure ([metadata.heroku] ensure = \"false\")")
            return False
        run_command(["dep", "ensure"], env=env, cwd=self.workspace(manifest),
                    description="dep ensure")
        return True
