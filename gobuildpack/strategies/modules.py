from ..cli_logger import logger
from ..detector import ToolStrategy
from .base import StrategyExecutor, run_command


class ModulesExecutor(StrategyExecutor):
    """Go modules: go.mod at the root, dependencies via `go mod download`."""

    strategy = ToolStrategy.MODULES
    minimum_go = "go1.11"

    def go_version(self, manifest):
        go_mod = manifest.go_mod()
        return go_mod["heroku"].get("goVersion") or go_mod["go"] or None

    def configured_packages(self, manifest):
        return manifest.go_mod()["heroku"].get("install", "").split()

    def env(self, extra=None):
        env = super().env(extra)
        env["GO111MODULE"] = "on"
        return env

    def prepare_dependencies(self, manifest, env):
        if manifest.has_vendored_modules():
            logger.step_info("Found vendor/modules.txt, using vendored modules")
            return False
        run_command(["go", "mod", "download"], env=env, cwd=manifest.build_dir,
                    description="go mod download")
        return True

    def build(self, manifest, spec, flags, env):
        command = ["go", "install"]
        if manifest.has_vendored_modules():
            command.append("-mod=vendor")
        run_command([*command, *flags, *spec.targets], env=env, cwd=manifest.build_dir,
                    description="go install")
