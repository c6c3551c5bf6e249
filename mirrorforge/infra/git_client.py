"""
Git client infrastructure for mirrorforge.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Bounded by the shared process budget of the ExecutionContext
"""

from typing import Dict, List, Optional, Sequence
import logging

from .process_runner import CommandResult, ExecutionContext

logger = logging.getLogger(__name__)


class GitClient:
    """
    Abstraction over git commands.

    Methods return None or False on failure; the failed command has
    already been logged by the ExecutionContext by then.

    Example:
        client = GitClient(ExecutionContext())
        tags = client.tags("/srv/mirrors/4963696e6761")
        if tags is not None:
            print(tags)
    """

    def __init__(self, context: ExecutionContext, config: Optional[Dict[str, str]] = None):
        """
        Initialize GitClient.

        Args:
            context: Shared execution context
            config: Options passed as `-c key=value` to every command
        """
        self.context = context
        self.options: List[str] = []
        for key, value in sorted((config or {}).items()):
            self.options += ["-c", f"{key}={value}"]

    def _run(self, path: Optional[str], *args: str) -> CommandResult:
        """
        Run a git command.

        Args:
            path: Repository to run in (via `git -C`), or None
            *args: git arguments

        Returns:
            CommandResult
        """
        argv: List[str] = list(self.options)
        if path is not None:
            argv += ["-C", str(path)]
        argv += list(args)
        return self.context.run(None, "git", *argv)

    def init_bare(self, path: str) -> bool:
        """Initialize a bare repository in an existing directory."""
        return self._run(path, "init", "--bare").ok

    def add_mirror_remote(self, path: str, remote: str, name: str = "origin") -> bool:
        """Add a remote that mirror-fetches all refs."""
        return self._run(path, "remote", "add", "--mirror=fetch", "--", name, remote).ok

    def fetch(self, path: str, remote: str = "origin") -> bool:
        """
        Fetch from remote.

        Returns:
            True if successful
        """
        return self._run(path, "fetch", remote).ok

    def tags(self, path: str) -> Optional[List[str]]:
        """
        List tag names.

        Returns:
            Tag names, or None if listing failed
        """
        result = self._run(path, "tag")
        if not result.ok:
            return None
        output = result.stdout.decode('utf-8', errors='replace')
        return [line for line in output.split('\n') if line]

    def commit_of(self, path: str, ref: str) -> Optional[str]:
        """
        Resolve a ref to the full hash of the commit it points at.

        Returns:
            Commit hash, or None if the ref cannot be resolved
        """
        result = self._run(path, "log", "-1", "--format=%H", ref)
        if not result.ok:
            return None
        return result.text

    def ls_tree(self, path: str, ref: str, *names: str) -> Optional[List[str]]:
        """
        List top-level entries of a tree, restricted to the given names.

        Returns:
            Matching entry names, or None if the command failed
        """
        result = self._run(path, "ls-tree", "--name-only", ref, *names)
        if not result.ok:
            return None
        output = result.stdout.decode('utf-8', errors='replace')
        return [line for line in output.split('\n') if line]

    def archive(self, path: str, ref: str, *paths: str) -> Optional[bytes]:
        """
        Create a tar archive of a tree.

        Returns:
            Raw tar stream, or None on failure
        """
        result = self._run(path, "archive", ref, *paths)
        if not result.ok:
            return None
        return result.stdout

    # Working-tree operations, used for the deploy repository

    def clone(self, remote: str, path: str) -> bool:
        """Clone a remote into path."""
        return self._run(None, "clone", "--", remote, path).ok

    def set_remote_url(self, path: str, remote: str, name: str = "origin") -> bool:
        return self._run(path, "remote", "set-url", "--", name, remote).ok

    def reset_hard(self, path: str) -> bool:
        return self._run(path, "reset", "--hard").ok

    def pull_rebase(self, path: str) -> bool:
        return self._run(path, "pull", "--rebase").ok

    def add(self, path: str, files: Sequence[str]) -> bool:
        return self._run(path, "add", "--", *files).ok

    def status_short(self, path: str) -> Optional[str]:
        """
        Short status of the working tree.

        Returns:
            Status output (empty if clean), or None on failure
        """
        result = self._run(path, "status", "-s")
        if not result.ok:
            return None
        return result.text

    def commit(self, path: str, message: str) -> bool:
        return self._run(path, "commit", "-m", message).ok

    def push(self, path: str) -> bool:
        return self._run(path, "push").ok
