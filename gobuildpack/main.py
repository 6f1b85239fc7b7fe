import click
from .commands import cache, compile, config, detect, log, version


@click.group()
def cli():
    """Go buildpack: detect, build and cache Go applications."""
    pass

cli.add_command(compile)
cli.add_command(detect)
cli.add_command(cache)
cli.add_command(config)
cli.add_command(log)
cli.add_command(version)


if __name__ == '__main__':
    cli()
