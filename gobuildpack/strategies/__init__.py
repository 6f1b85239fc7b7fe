from ..detector import ToolStrategy
from .base import (
    BUILD_TAG,
    DEFAULT_PACKAGE,
    BuildLayout,
    PackageSpec,
    StrategyExecutor,
    build_flags,
    run_command,
    run_hook,
)
from .dep import DepExecutor
from .gb import GbExecutor
from .glide import GlideExecutor
from .godep import GodepExecutor
from .govendor import GovendorExecutor
from .modules import ModulesExecutor

EXECUTORS = {
    ToolStrategy.MODULES: ModulesExecutor,
    ToolStrategy.DEP: DepExecutor,
    ToolStrategy.GODEP: GodepExecutor,
    ToolStrategy.GOVENDOR: GovendorExecutor,
    ToolStrategy.GLIDE: GlideExecutor,
    ToolStrategy.GB: GbExecutor,
}


def executor_for(strategy, layout, config, warn=None):
    return EXECUTORS[strategy](layout, config, warn=warn)
