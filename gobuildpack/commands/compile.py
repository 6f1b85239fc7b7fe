import click
import sys
from ..cli_logger import logger
from ..config import load_build_config
from ..decorators import handle_exceptions
from .. import orchestrator


@click.command()
@click.argument("build_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("cache_dir", type=click.Path(file_okay=False))
@click.argument("env_dir", required=False, type=click.Path(file_okay=False))
@handle_exceptions
def compile(build_dir, cache_dir, env_dir):
    """Compile the Go app in BUILD_DIR, caching between builds in CACHE_DIR."""
    config = load_build_config(env_dir=env_dir, build_dir=build_dir)
    result = orchestrator.BuildOrchestrator(build_dir, cache_dir, config).run()
    logger.debug(f"Log written to {logger.log_file}")
    sys.exit(result.exit_code)
