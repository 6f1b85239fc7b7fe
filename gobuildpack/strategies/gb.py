from ..detector import ToolStrategy
from .base import StrategyExecutor, run_command


class GbExecutor(StrategyExecutor):
    """gb: project-based workspace with sources under src/, binaries land in bin/."""

    strategy = ToolStrategy.GB
    tool_name = "gb"

    def env(self, extra=None):
        env = super().env(extra)
        env["GO111MODULE"] = "off"
        return env

    def build(self, manifest, spec, flags, env):
        # gb builds every package under src/ unless told otherwise
        targets = [] if spec.is_default else list(spec.targets)
        run_command(["gb", "build", *flags, *targets], env=env, cwd=manifest.build_dir,
                    description="gb build")
