"""
Handles the 'check-config' command.
"""

import json

import click

from ..cli_utils import standard_command, add_common_options
from ..config import get_config_path, load_settings


@click.command(name='check-config')
@click.option('--no-deploy', is_flag=True, help="Don't require the deploy section")
@add_common_options('config', 'verbose')
@standard_command
def check_config_handler(no_deploy, config_path, verbose):
    """Validate the configuration file.

    Prints a summary object on success; every problem is reported
    otherwise and the exit code is non-zero.
    """
    path = get_config_path(config_path)
    settings = load_settings(path, require_deploy=not no_deploy)

    print(json.dumps({
        'config': str(path),
        'framework': settings.framework,
        'accounts': sorted({spec.account.name for spec in settings.specs}),
        'patterns': sum(len(spec.patterns) for spec in settings.specs),
        'schedule': settings.schedule,
        'deploy': settings.deploy.remote if settings.deploy else None,
        'notify': settings.notify_email or None,
    }, ensure_ascii=False), flush=True)
