"""Build orchestration.

A build moves through a fixed sequence of stages:

  Init -> BinariesInstalled -> CacheRestored -> DependenciesBuilt
       -> CacheSaved -> Pruned -> Summarized -> Finished

Each stage is recorded on the BuildContext before its work starts, so a
failure leaves the name of the stage that was running. Any error takes the
Failed path: diagnostics are printed, the BuildResult is written to the cache
directory and ``run()`` returns it. Nothing is retried.
"""

import contextlib
import json
import os
import signal
import threading
import time
from dataclasses import asdict, dataclass, field

from . import signature as sig
from .cache import RESULT_FILE, CacheStore
from .cli_logger import logger, metrics
from .config import DEFAULT_GO_VERSION
from .credentials import git_credentials
from .detector import DEPRECATED_STRATEGIES, select_strategy
from .diagnostics import report_failure
from .errors import BuildInterrupted, BuildpackError, CacheIOError
from .installer import Installer, require_minimum_go
from .manifest import POST_COMPILE_HOOK, PRE_COMPILE_HOOK, ProjectManifest
from .strategies import BuildLayout, build_flags, executor_for, run_hook
from .utils import remove_tree

STAGES = (
    "Init",
    "BinariesInstalled",
    "CacheRestored",
    "DependenciesBuilt",
    "CacheSaved",
    "Pruned",
    "Summarized",
)
FINISHED = "Finished"
FAILED = "Failed"


class BuildContext:
    """Per-build record of progress, warnings and resolved values, passed to every stage."""

    def __init__(self):
        self.stage = None
        self.warnings = []
        self.timings = {}
        self.manifest = None
        self.executor = None
        self.strategy = None
        self.go_version = None
        self.tool_version = None
        self.package_spec = None
        self.cache_directories = ()
        self.cache_state = None
        self.signature = None
        self.restored = []
        self.env = {}

    def record_stage(self, name):
        self.stage = name
        logger.debug(f"Stage: {name}")

    def record_warning(self, message):
        message = str(message)
        if message not in self.warnings:
            self.warnings.append(message)
            logger.warning(message)


@dataclass
class BuildResult:
    success: bool
    state: str
    last_stage: str
    warnings: list = field(default_factory=list)
    strategy: str = None
    go_version: str = None
    tool_version: str = None
    package_spec: list = field(default_factory=list)
    cache_state: str = None
    signature: str = None
    restored: list = field(default_factory=list)
    diagnosis: str = None
    message: str = None
    timings: dict = field(default_factory=dict)

    @property
    def exit_code(self):
        return 0 if self.success else 1

    def to_dict(self):
        return asdict(self)


@contextlib.contextmanager
def terminate_on_signal(signums=(signal.SIGTERM,)):
    """Turn termination signals into BuildInterrupted for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum, frame):
        raise BuildInterrupted(signum)

    previous = {signum: signal.signal(signum, _raise) for signum in signums}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


class BuildOrchestrator:
    def __init__(self, build_dir, cache_dir, config, installer=None, cache_store=None):
        self.build_dir = os.path.abspath(build_dir)
        self.cache_dir = os.path.abspath(cache_dir)
        self.config = config
        self.installer = installer or Installer()
        self.cache = cache_store or CacheStore(self.cache_dir, self.build_dir)
        self.layout = BuildLayout(self.build_dir, module_cache_in_gopath=config.module_cache_in_gopath)

    def _stage_work(self):
        return {
            "Init": self._init,
            "BinariesInstalled": self._install_binaries,
            "CacheRestored": self._restore_cache,
            "DependenciesBuilt": self._build,
            "CacheSaved": self._save_cache,
            "Pruned": self._prune,
            "Summarized": self._summarize,
        }

    def run(self):
        """Run every stage and return the BuildResult; never raises for build errors."""
        context = BuildContext()
        logger.clear_tail()
        started = time.time()
        error = None
        work = self._stage_work()

        try:
            with contextlib.ExitStack() as stack:
                stack.enter_context(terminate_on_signal())
                context.env = stack.enter_context(git_credentials(self.config.git_credentials))
                for stage in STAGES:
                    context.record_stage(stage)
                    stage_started = time.time()
                    work[stage](context)
                    context.timings[stage] = round(time.time() - stage_started, 3)
                context.record_stage(FINISHED)
        except (Exception, KeyboardInterrupt) as e:
            error = e

        total_ms = (time.time() - started) * 1000
        metrics.emit_timing("compile.duration", total_ms)
        result = self._result(context, error)
        if error is not None:
            metrics.emit_count("compile.failed")
            self._print_warnings(context)
            logger.error(f"Build failed during stage {context.stage}.")
        else:
            metrics.emit_count("compile.succeeded")
        self._write_result(result)
        return result

    def _result(self, context, error):
        result = BuildResult(
            success=error is None,
            state=FINISHED if error is None else FAILED,
            last_stage=context.stage,
            warnings=list(context.warnings),
            strategy=context.strategy.value if context.strategy else None,
            go_version=context.go_version,
            tool_version=context.tool_version,
            package_spec=list(context.package_spec.targets) if context.package_spec else [],
            cache_state=context.cache_state.value if context.cache_state else None,
            signature=context.signature,
            restored=list(context.restored),
            timings=dict(context.timings),
        )
        if error is not None:
            if isinstance(error, KeyboardInterrupt):
                error = BuildInterrupted(signal.SIGINT)
            elif not isinstance(error, BuildpackError):
                logger.exception(type(error), error, error.__traceback__)
            diagnosis = report_failure(error, logger.tail())
            result.diagnosis = diagnosis.code
            result.message = str(error)
        return result

    def _write_result(self, result):
        path = os.path.join(self.cache_dir, RESULT_FILE)
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(path, "w") as f:
                json.dump(result.to_dict(), f, indent=2, sort_keys=True)
        except OSError as e:
            logger.warning(f"Could not write build metadata to {path}: {e}")

    # -------------------- stages --------------------

    def _init(self, context):
        logger.topic("Detecting Go dependency manager")
        for warning in self.config.warnings:
            context.record_warning(warning)

        context.manifest = ProjectManifest(self.build_dir)
        strategy, fallback_warning = select_strategy(context.manifest)
        if fallback_warning:
            context.record_warning(fallback_warning)
        context.strategy = strategy
        context.executor = executor_for(strategy, self.layout, self.config, warn=context.record_warning)
        logger.step_info(f"Detected {strategy.value}")
        if strategy in DEPRECATED_STRATEGIES:
            context.record_warning(
                f"{strategy.value} is deprecated and no longer maintained. Please migrate to Go modules."
            )

        executor = context.executor
        requested = self.config.go_version or executor.metadata(executor.go_version, context.manifest)
        if not requested:
            logger.step_info(f"No Go version specified, defaulting to {DEFAULT_GO_VERSION}")
        context.go_version = requested or DEFAULT_GO_VERSION
        metrics.emit_count(f"strategy.{strategy.value}")

    def _install_binaries(self, context):
        logger.topic(f"Installing Go toolchain ({context.go_version})")
        executor = context.executor
        context.go_version = self.installer.install("go", context.go_version, self.layout.go_root)
        require_minimum_go(context.go_version, executor.minimum_go, context.strategy.value)
        if executor.tool_name:
            logger.topic(f"Installing {executor.tool_name}")
            context.tool_version = self.installer.install(executor.tool_name, None, self.layout.tool_bin)
        metrics.emit_count(f"go_version.{context.go_version}")

    def _restore_cache(self, context):
        logger.topic("Restoring build cache")
        context.cache_directories = self.config.cache_directories or self.layout.default_cache_directories()
        context.signature = sig.compute(
            context.go_version,
            context.executor.package_manager_version(context.tool_version),
            self.config.stack,
        )
        try:
            stored = self.cache.read_signature()
        except CacheIOError as e:
            context.record_warning(f"{e}; continuing without cache.")
            stored = None

        context.cache_state = sig.classify(context.signature, stored, self.config.disable_cache)
        logger.step_info(f"Cache state: {context.cache_state.value}")
        metrics.emit_count(f"cache.{context.cache_state.value}")

        try:
            context.restored = self.cache.restore(context.cache_state, context.cache_directories)
        except CacheIOError as e:
            context.record_warning(f"{e}; continuing without cache.")
            context.restored = []

    def _build(self, context):
        manifest, executor = context.manifest, context.executor
        env = executor.env(context.env)

        context.package_spec = executor.resolve_package_spec(
            manifest, self.config.package_spec_override
        )
        if context.package_spec.is_default:
            context.record_warning(
                "No install targets found (no GO_INSTALL_PACKAGE_SPEC, no tool setting, "
                "no main packages). Building '.'."
            )
        logger.topic(f"Building {' '.join(context.package_spec.targets)}")

        workspace = executor.workspace(manifest)
        pre_hook = manifest.hook(PRE_COMPILE_HOOK)
        if pre_hook:
            logger.step_info(f"Running {PRE_COMPILE_HOOK}")
            run_hook(pre_hook, env=env, cwd=self.build_dir)

        if self.config.skip_dependency_sync:
            logger.step_info("Skipping dependency sync")
        else:
            executor.prepare_dependencies(manifest, env)

        os.makedirs(self.layout.bin_dir, exist_ok=True)
        executor.build(manifest, context.package_spec, build_flags(self.config), env)
        logger.step_info(f"Built from {workspace}")

        post_hook = manifest.hook(POST_COMPILE_HOOK)
        if post_hook:
            logger.step_info(f"Running {POST_COMPILE_HOOK}")
            run_hook(post_hook, env=env, cwd=self.build_dir)

    def _save_cache(self, context):
        if context.cache_state == sig.CacheState.DISABLED:
            logger.step_info("Build cache disabled (GO_DISABLE_CACHE)")
            return
        logger.topic("Saving build cache")
        try:
            saved = self.cache.save(context.cache_directories, context.signature, context.cache_state)
            metrics.emit_size("cache.size", self.cache.size())
            logger.step_info(f"Cached {len(saved)} director{'y' if len(saved) == 1 else 'ies'}")
        except CacheIOError as e:
            context.record_warning(f"{e}; the next build will start without cache.")

    def _prune(self, context):
        logger.topic("Pruning build-time files")
        remove = []
        if not self.config.install_tools_in_image:
            remove += [self.layout.go_root, self.layout.tool_bin]
        if not self.config.setup_gopath_in_image:
            remove += [self.layout.gopath, self.layout.module_cache, self.layout.gocache]
        for path in remove:
            if os.path.isdir(path) and not os.path.islink(path):
                remove_tree(path)
                logger.step_info(f"Removed {self.layout.relative(path)}")
        with contextlib.suppress(OSError):
            os.rmdir(self.layout.root)

    def _summarize(self, context):
        logger.topic("Summary")
        binaries = sorted(os.listdir(self.layout.bin_dir)) if os.path.isdir(self.layout.bin_dir) else []
        if binaries:
            logger.step_info("Installed the following binaries:")
            for name in binaries:
                logger.step_info(f"  ./bin/{name}")
        else:
            context.record_warning("The build produced no binaries in ./bin.")
        metrics.emit_count("binaries", len(binaries))
        self._print_warnings(context)
        logger.success("Build succeeded")

    def _print_warnings(self, context):
        if not context.warnings:
            return
        logger.step_info(f"{len(context.warnings)} warning(s):")
        for warning in context.warnings:
            logger.step_info(f"  - {warning}")
