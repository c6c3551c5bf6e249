"""
Infrastructure layer for mirrorforge.

Contains abstractions for external systems:
- ExecutionContext: bounded, shutdown-safe external process execution
- GitClient: Git command execution
- GitHubClient: GitHub API access

These provide clean interfaces that can be mocked for testing.
"""

from .process_runner import ExecutionContext, CommandResult, ReadWriteLock
from .git_client import GitClient
from .github_client import GitHubClient, RateLimitStatus

__all__ = [
    'ExecutionContext',
    'CommandResult',
    'ReadWriteLock',
    'GitClient',
    'GitHubClient',
    'RateLimitStatus',
]
