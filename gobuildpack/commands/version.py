import click
import importlib.metadata
from ..cli_logger import logger


@click.command()
def version():
    """Print the version of gobuildpack."""
    try:
        ver = importlib.metadata.version("gobuildpack")
        logger.info(f"gobuildpack version {ver}")
    except importlib.metadata.PackageNotFoundError:
        logger.error("Error: Could not determine the version of gobuildpack. Is it installed correctly?")
