import click
import sys
from ..cli_logger import logger
from ..detector import select_strategy
from ..errors import DetectionFailure
from ..manifest import ProjectManifest


@click.command()
@click.argument("build_dir", type=click.Path(exists=True, file_okay=False))
def detect(build_dir):
    """Report whether BUILD_DIR is a Go app and which tool it uses."""
    try:
        strategy, warning = select_strategy(ProjectManifest(build_dir))
    except DetectionFailure as e:
        logger.error(str(e))
        sys.exit(1)
    if warning:
        logger.warning(warning)
    click.echo(f"Go ({strategy.value})")
