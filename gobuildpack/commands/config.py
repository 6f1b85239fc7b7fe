import click
import json
from .. import config as config_module
from ..cli_logger import logger


@click.group()
def config():
    """View the effective build configuration."""
    pass


@config.command()
@click.argument("build_dir", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--env-dir", default=None, type=click.Path(file_okay=False),
              help="Heroku-style env dir, one file per variable.")
def show(build_dir, env_dir):
    """Print the configuration a compile of BUILD_DIR would use."""
    conf = config_module.load_build_config(env_dir=env_dir, build_dir=build_dir)
    for warning in conf.warnings:
        logger.warning(warning)
    click.echo(json.dumps(conf.to_dict(), indent=4))
