"""
Domain layer for mirrorforge.

Contains pure domain objects with no I/O or side effects:
- Account, ModuleSpec: what the operator configured
- RepoCandidate, UnknownRepo, Classification: what discovery produced
- MirrorEntry: a local bare mirror of one remote
- ResolvedVersion, BuildPlan: pinned versions ready for script assembly

These objects are immutable where possible and provide
serialization methods for JSONL output.
"""

from .module import (
    Account,
    AccountKind,
    ModuleSpec,
    RepoCandidate,
    UnknownRepo,
    Classification,
    GITHUB_PREFIX,
    GITHUB_SUFFIX,
    valid_module_id,
)
from .mirror import MirrorEntry, mirror_key
from .version import ResolvedVersion, BuildPlan, HEAD

__all__ = [
    'Account',
    'AccountKind',
    'ModuleSpec',
    'RepoCandidate',
    'UnknownRepo',
    'Classification',
    'GITHUB_PREFIX',
    'GITHUB_SUFFIX',
    'valid_module_id',
    'MirrorEntry',
    'mirror_key',
    'ResolvedVersion',
    'BuildPlan',
    'HEAD',
]
