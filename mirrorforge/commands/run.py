"""
Handles the 'run' command: the long-running build daemon.

Builds on the configured schedule, deploys each script and reloads
the configuration whenever the file changes.
"""

import logging

import click

from ..cli_utils import standard_command, add_common_options
from ..config import get_config_path, load_settings
from ..exit_codes import ConfigError
from ..infra.process_runner import ExecutionContext
from ..scheduler import Scheduler

logger = logging.getLogger(__name__)


@click.command(name='run')
@add_common_options('config', 'verbose', 'max_processes')
@standard_command
def run_handler(config_path, verbose, max_processes):
    """Build and deploy on schedule until terminated.

    \b
    SIGTERM and SIGINT let running git commands finish, then exit.
    A broken config is reported and waited out; fixing the file
    resumes scheduling without a restart.

    Examples:

    \b
        mirrorforge run
        mirrorforge run -c /etc/mirrorforge/config.yml -j 4
    """
    path = get_config_path(config_path)

    if not max_processes:
        # The process budget is fixed for the lifetime of the daemon
        try:
            max_processes = load_settings(path).max_processes or None
        except ConfigError:
            max_processes = None

    context = ExecutionContext(max_processes)
    context.install_signal_handlers()
    logger.info(f"Running up to {context.max_processes} processes at once")

    Scheduler(path, context).run()
