"""
Module identity resolution for mirrorforge.

A repository may declare its module id in a `module.info` file at its
root, in a line like `Module: director`. The file is read straight
out of the bare mirror via `git archive`.
"""

import io
import logging
import re
import tarfile
from typing import Optional, Tuple

from ..domain import HEAD, ResolvedVersion
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)

MODULE_INFO = "module.info"
MODULE_NAME = re.compile(r'^Module:\s*(\S+)', re.MULTILINE)


class ArchiveError(Exception):
    """git archive produced a stream that is not a readable tar."""


def read_archive_member(data: bytes, name: str) -> Optional[bytes]:
    """
    Extract one member from a tar stream.

    Returns:
        Member content, or None if the archive has no such member

    Raises:
        ArchiveError: The stream is truncated or malformed
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as archive:
            for member in archive:
                if member.name == name and member.isfile():
                    handle = archive.extractfile(member)
                    if handle is None:
                        raise ArchiveError(f"{name} has no content")
                    return handle.read()
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ArchiveError(str(e)) from e

    return None


def parse_module_name(content: bytes) -> str:
    """Module id declared in a module.info file, or ""."""
    match = MODULE_NAME.search(content.decode('utf-8', errors='replace'))
    return match.group(1) if match else ""


class IdentityResolver:
    """
    Reads self-declared module ids from mirrors.

    Example:
        resolver = IdentityResolver(git)
        name, ok = resolver.identify("mirrors/616263", remote, "v1.0.0")
    """

    def __init__(self, git: GitClient):
        self.git = git

    def identify(self, mirror_path: str, remote: str, tag: str) -> Tuple[str, bool]:
        """
        Read the module id a repository declares at a tag.

        Returns:
            (module id or "", ok); a missing file or field is not an error
        """
        path = str(mirror_path)

        listing = self.git.ls_tree(path, tag, MODULE_INFO)
        if listing is None:
            # An empty repository has no HEAD tree
            return "", tag == HEAD

        if not listing:
            logger.debug(f"No {MODULE_INFO} file found in {remote}@{tag}")
            return "", True

        data = self.git.archive(path, tag, MODULE_INFO)
        if data is None:
            return "", False

        try:
            content = read_archive_member(data, MODULE_INFO)
        except ArchiveError as e:
            logger.error(f"Got bad output from git archive for {remote}@{tag}: {e}")
            return "", False

        if content is None:
            logger.error(f"git archive of {remote}@{tag} lacks {MODULE_INFO}")
            return "", False

        name = parse_module_name(content)
        if name:
            logger.debug(f"{MODULE_INFO} of {remote}@{tag} names module {name}")
        else:
            logger.debug(f"{MODULE_INFO} of {remote}@{tag} doesn't name any module")

        return name, True

    def identify_version(self, mirror_path: str, version: ResolvedVersion) -> Optional[str]:
        """
        Find the module id for a resolved version.

        Tries the pinned tag, then the greatest pre-release tag, then HEAD.

        Returns:
            Module id ("" if none is declared), or None on failure
        """
        tried = []
        for tag in (version.tag, version.prerelease_tag, HEAD):
            if not tag or tag in tried:
                continue
            tried.append(tag)

            name, ok = self.identify(mirror_path, version.remote, tag)
            if not ok:
                return None
            if name:
                return name

        return ""
