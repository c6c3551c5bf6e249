"""
Handles the 'discover' command: classification without mirroring.

Default output is JSONL, one record per module, self-declaring
candidate and unknown repository. --pretty renders tables instead.
"""

import json

import click

from ..cli_utils import standard_command, add_common_options
from ..config import get_config_path, load_settings
from ..exit_codes import APIError
from ..infra.github_client import GitHubClient
from ..render import render_classification
from ..services.discovery_service import DiscoveryService


@click.command(name='discover')
@click.option('--pretty', is_flag=True, help='Display as formatted tables')
@add_common_options('config', 'verbose')
@standard_command
def discover_handler(pretty, config_path, verbose):
    """Show how the configured patterns classify GitHub repositories.

    Examples:

    \b
        mirrorforge discover --pretty
        mirrorforge discover | jq -r 'select(.type == "unknown") | .repo'
    """
    settings = load_settings(
        get_config_path(config_path),
        require_deploy=False,
        require_schedule=False,
    )

    service = DiscoveryService(GitHubClient(token=settings.github_token or None))
    repos = service.fetch_accounts(spec.account for spec in settings.specs)
    if repos is None:
        raise APIError("Couldn't list repositories of all configured accounts")

    result = service.classify(settings.specs, repos, exclude=[settings.framework])

    if pretty:
        render_classification(result)
        return

    for module_id, candidate in sorted(result.assignments.items()):
        print(json.dumps({'type': 'module', 'module': module_id, **candidate.to_dict()},
                         ensure_ascii=False), flush=True)
    for candidate in result.self_declared:
        print(json.dumps({'type': 'self_declared', **candidate.to_dict()},
                         ensure_ascii=False), flush=True)
    for repo in result.sorted_unknown():
        print(json.dumps({'type': 'unknown', **repo.to_dict()},
                         ensure_ascii=False), flush=True)
