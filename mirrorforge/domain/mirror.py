"""
Mirror domain objects for mirrorforge.

A mirror is a local bare repository that mirror-fetches one remote.
Its directory name is derived from the remote so the same remote
always lands in the same directory across build cycles.
"""

from dataclasses import dataclass
from pathlib import Path


def mirror_key(full_name: str) -> str:
    """Filesystem-safe, collision-free directory name for `owner/name`."""
    return full_name.encode('utf-8').hex()


@dataclass(frozen=True)
class MirrorEntry:
    """A bare mirror owned by the mirror store."""
    key: str
    remote: str
    path: Path
