"""
Handles the 'build' command: one build cycle in the foreground.
"""

from pathlib import Path

import click

from ..cli_utils import standard_command, add_common_options
from ..config import get_config_path, load_settings
from ..exit_codes import BuildFailedError, DeployFailedError
from ..infra.process_runner import ExecutionContext
from ..scheduler import run_once
from ..services.deploy_service import write_atomic


@click.command(name='build')
@click.option('-o', '--output', type=click.Path(dir_okay=False),
              help='Write the script to this file instead of stdout')
@click.option('--deploy', is_flag=True, help='Also commit and push the script')
@add_common_options('config', 'verbose', 'max_processes')
@standard_command
def build_handler(output, deploy, config_path, verbose, max_processes):
    """Build the install script once.

    \b
    Without --deploy the deploy section may be left out and the
    script goes to stdout (or --output).

    Examples:

    \b
        mirrorforge build > install.sh
        mirrorforge build -o install.sh
        mirrorforge build --deploy
    """
    settings = load_settings(
        get_config_path(config_path),
        require_deploy=deploy,
        require_schedule=False,
    )
    context = ExecutionContext(max_processes or settings.max_processes or None)

    result = run_once(settings, context, deploy=deploy)
    if result.script is None:
        raise BuildFailedError()

    if output:
        write_atomic(Path(output), result.script)
    elif not deploy:
        stdout = click.get_binary_stream('stdout')
        stdout.write(result.script)
        stdout.flush()

    if result.deployed is False:
        raise DeployFailedError()
