#!/usr/bin/env python3

import click

from mirrorforge.commands.run import run_handler
from mirrorforge.commands.build import build_handler
from mirrorforge.commands.discover import discover_handler
from mirrorforge.commands.config import check_config_handler


@click.group()
@click.version_option(package_name='mirrorforge')
def cli():
    """mirrorforge - Mirrors Icinga Web 2 modules and builds their install script.

    Discovers module repositories on GitHub, keeps bare mirrors of them,
    pins each to its latest release and renders a shell script that
    installs the framework plus every module.
    """
    pass


cli.add_command(run_handler)
cli.add_command(build_handler)
cli.add_command(discover_handler)
cli.add_command(check_config_handler)


def main():
    cli()

if __name__ == "__main__":
    main()
