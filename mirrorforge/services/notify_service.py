"""
Notification of repositories no pattern covers.

Repositories that look like modules (they carry a module.info file)
but match no configured pattern are reported, in the log and
optionally by mail via s-nail.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..domain import HEAD, UnknownRepo, mirror_key
from ..infra.git_client import GitClient
from ..infra.process_runner import ExecutionContext
from .identity_resolver import MODULE_INFO

logger = logging.getLogger(__name__)

SUBJECT = "mirrorforge discovered new repos"


def format_message(repos: Iterable[UnknownRepo]) -> str:
    """Plain-text mail body listing uncovered repositories."""
    lines = [
        "mirrorforge scanned the repositories as configured and discovered ones "
        "which aren't covered by any configured repository pattern (per repository owner):",
        "",
    ]
    lines += [f"* {repo.url}" for repo in repos]
    lines += [
        "",
        "Please configure additional patterns which cover them by either "
        r"including ( \Aiw2-mod-(.+)\z ) or ignoring ( \Ano-mod-() ).",
        "",
    ]
    return "\n".join(lines)


class NotifyService:
    """
    Reports uncovered repositories.

    Example:
        service = NotifyService(ExecutionContext(), Path("mirrors"), email="ops@example.com")
        service.notify(build_service.last_unknown)
    """

    def __init__(
        self,
        context: ExecutionContext,
        mirrors: Path,
        email: str = "",
        git: Optional[GitClient] = None
    ):
        """
        Initialize NotifyService.

        Args:
            context: Shared execution context
            mirrors: Mirror store directory
            email: Recipient; empty disables mail
            git: Git client (creates new if None)
        """
        self.context = context
        self.mirrors = Path(mirrors)
        self.email = email
        self.git = git or GitClient(context)

    def _looks_like_module(self, repo: UnknownRepo) -> bool:
        """False only if the repo's mirror proves it has no module.info."""
        path = self.mirrors / mirror_key(repo.full_name)
        if not path.is_dir():
            return True

        listing = self.git.ls_tree(str(path), HEAD, MODULE_INFO)
        return listing is None or bool(listing)

    def filter(self, unknown: Iterable[UnknownRepo]) -> List[UnknownRepo]:
        """Uncovered repositories worth reporting, sorted by owner and name."""
        return sorted(repo for repo in set(unknown) if self._looks_like_module(repo))

    def notify(self, unknown: Iterable[UnknownRepo]) -> List[UnknownRepo]:
        """
        Report uncovered repositories.

        Returns:
            The repositories reported
        """
        repos = self.filter(unknown)

        if not repos:
            logger.debug("The repository patterns covered all repositories")
            return repos

        logger.warning(
            "The repository patterns didn't cover some repositories: "
            + ", ".join(repo.full_name for repo in repos)
        )

        if self.email:
            logger.info(f"Notifying {self.email} via s-nail")
            result = self.context.run(
                None, "s-nail", "-s", SUBJECT, self.email,
                input=format_message(repos).encode('utf-8'),
            )
            if not result.ok:
                logger.error(f"Couldn't notify {self.email} via s-nail")

        return repos
