from ..cli_logger import logger
from ..detector import ToolStrategy
from .base import GopathExecutor, run_command
from .dep import _as_list, _is_false


class GovendorExecutor(GopathExecutor):
    """govendor: vendor/vendor.json, settings under the "heroku" key."""

    strategy = ToolStrategy.GOVENDOR
    tool_name = "govendor"
    minimum_go = "go1.6"

    def _heroku(self, manifest):
        return manifest.vendor_json().get("heroku", {}) or {}

    def import_path(self, manifest):
        return manifest.vendor_json().get("rootPath", "")

    def go_version(self, manifest):
        return self._heroku(manifest).get("goVersion") or None

    def configured_packages(self, manifest):
        return _as_list(self._heroku(manifest).get("install"))

    def prepare_dependencies(self, manifest, env):
        if _is_false(self._heroku(manifest).get("sync", True)):
            logger.step_info("Skipping govendor sync (heroku.sync is false)")
            return False
        run_command(["govendor", "sync"], env=env, cwd=self.workspace(manifest),
                    description="govendor sync")
        return True
