import click
import json
import os
from ..cache import RESULT_FILE, CacheStore
from ..cli_logger import logger
from ..decorators import handle_exceptions
from ..errors import CacheIOError


@click.group()
def cache():
    """Inspect or clear a build cache directory."""
    pass


@cache.command()
@click.argument("cache_dir", type=click.Path(file_okay=False))
@handle_exceptions
def show(cache_dir):
    """Show the signature, cached directories and last build result in CACHE_DIR."""
    store = CacheStore(cache_dir, ".")
    try:
        signature = store.read_signature()
    except CacheIOError as e:
        logger.error(str(e))
        signature = None
    click.echo(f"Signature: {signature or '(none)'}")
    directories = store.cached_directories()
    if directories:
        click.echo("Cached directories:")
        for d in directories:
            click.echo(f"  {d}")
    else:
        click.echo("Cached directories: (none)")
    click.echo(f"Size: {store.size()} bytes")

    result_path = os.path.join(store.cache_dir, RESULT_FILE)
    if os.path.exists(result_path):
        try:
            with open(result_path, "r") as f:
                result = json.load(f)
        except (IOError, ValueError) as e:
            logger.warning(f"Could not read {result_path}: {e}")
            return
        click.echo(f"Last build: {result.get('state')} (stage {result.get('last_stage')})")
        for warning in result.get("warnings", []):
            click.echo(f"  warning: {warning}")


@cache.command()
@click.argument("cache_dir", type=click.Path(file_okay=False))
@handle_exceptions
def clear(cache_dir):
    """Remove the signature and every cached directory from CACHE_DIR."""
    store = CacheStore(cache_dir, ".")
    store.clear()
    logger.success(f"Cleared cache at {store.cache_dir}")
