"""
Version resolution for mirrorforge.

Picks the commit a mirror gets pinned to:
1. The greatest final release tag, else
2. the greatest pre-release tag, else
3. HEAD.

Tags look like `v1.2.3` or `1.2.3-rc1`. The numeric core is compared
with packaging's Version ordering, pre-release suffixes by semantic
versioning precedence.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from packaging.version import InvalidVersion, Version

from ..domain import HEAD, ResolvedVersion
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)

# Optional "v", dot-separated numbers, optional semver pre-release suffix
VERSION_TAG = re.compile(
    r'\Av?(?P<core>\d+(?:\.\d+)*)(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?\Z'
)

# (core, pre-release identifiers); no identifiers for a final release
VersionKey = Tuple[Version, Tuple[Tuple[int, int, str], ...]]


@dataclass(frozen=True)
class TagSelection:
    """Outcome of picking among a repository's tags."""
    tag: str = HEAD
    final_tag: Optional[str] = None
    prerelease_tag: Optional[str] = None


def prerelease_key(pre: str) -> Tuple[Tuple[int, int, str], ...]:
    """
    Sort key of a pre-release suffix.

    Identifiers are compared left to right: numeric ones as numbers and
    below any alphanumeric one, alphanumeric ones lexically in ASCII
    order. A suffix that is a prefix of another sorts first.
    """
    key = []
    for identifier in pre.split('.'):
        if identifier.isdigit():
            key.append((0, int(identifier), ""))
        else:
            key.append((1, 0, identifier))
    return tuple(key)


def parse_version_tag(tag: str) -> Optional[VersionKey]:
    """
    Parse a version tag.

    Returns:
        (core version, pre-release key), or None if the tag is not a
        version tag; the pre-release key is empty for final releases
    """
    match = VERSION_TAG.match(tag)
    if match is None:
        return None

    try:
        core = Version(match.group('core'))
    except InvalidVersion as e:
        logger.warning(f"Something is wrong with version tag {tag!r}: {e}")
        return None

    pre = match.group('pre')
    return core, prerelease_key(pre) if pre else ()


def select_tag(tags: Iterable[str]) -> TagSelection:
    """
    Choose the tag to pin.

    Final releases beat pre-releases regardless of their version; among
    equal versions the first tag seen wins.
    """
    best_final: Optional[Tuple[VersionKey, str]] = None
    best_pre: Optional[Tuple[VersionKey, str]] = None

    for tag in tags:
        tag = tag.strip()
        parsed = parse_version_tag(tag)
        if parsed is None:
            continue

        if parsed[1]:
            if best_pre is None or parsed > best_pre[0]:
                best_pre = (parsed, tag)
        else:
            if best_final is None or parsed > best_final[0]:
                best_final = (parsed, tag)

    final_tag = best_final[1] if best_final else None
    prerelease_tag = best_pre[1] if best_pre else None

    return TagSelection(
        tag=final_tag or prerelease_tag or HEAD,
        final_tag=final_tag,
        prerelease_tag=prerelease_tag,
    )


class VersionResolver:
    """
    Resolves a mirror to its latest releasable commit.

    Example:
        resolver = VersionResolver(git)
        version = resolver.resolve("mirrors/4963696e6761", "https://github.com/Icinga/icingaweb2.git")
        if version:
            print(version.tag, version.commit)
    """

    def __init__(self, git: GitClient):
        self.git = git

    def resolve(self, mirror_path: str, remote: str) -> Optional[ResolvedVersion]:
        """
        Resolve the commit to pin for a mirror.

        Returns:
            ResolvedVersion, or None on failure
        """
        tags = self.git.tags(str(mirror_path))
        if tags is None:
            return None

        selection = select_tag(tags)
        logger.debug(f"Latest tag of {remote}: {selection.tag}")

        commit = self.git.commit_of(str(mirror_path), selection.tag)
        if not commit:
            if selection.tag != HEAD:
                logger.error(f"Couldn't resolve tag {selection.tag} of {remote}")
                return None
            # Empty repository; HEAD stands in for the commit
            commit = HEAD

        logger.debug(f"Commit of {remote}@{selection.tag}: {commit}")

        return ResolvedVersion(
            remote=remote,
            tag=selection.tag,
            commit=commit,
            prerelease_tag=selection.prerelease_tag,
        )
