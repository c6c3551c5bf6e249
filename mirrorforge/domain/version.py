"""
Resolved versions and build plans.

A ResolvedVersion pins one remote to a commit. A BuildPlan holds the
framework and every module, ready to be turned into a shell script.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Ref used when a repository has no releasable tag
HEAD = "HEAD"


@dataclass(frozen=True)
class ResolvedVersion:
    """
    A remote pinned to a commit.

    Attributes:
        remote: Clone URL
        tag: Selected tag, or HEAD if none is releasable
        commit: Full commit hash (HEAD itself if HEAD could not be resolved)
        module_id: Module id, if known
        prerelease_tag: Greatest pre-release tag, used as identity fallback
    """
    remote: str
    tag: str
    commit: str
    module_id: Optional[str] = None
    prerelease_tag: Optional[str] = None

    def with_module_id(self, module_id: str) -> 'ResolvedVersion':
        return ResolvedVersion(
            remote=self.remote,
            tag=self.tag,
            commit=self.commit,
            module_id=module_id,
            prerelease_tag=self.prerelease_tag,
        )


@dataclass(frozen=True)
class BuildPlan:
    """Framework plus module id -> pinned version."""
    framework: ResolvedVersion
    modules: Dict[str, ResolvedVersion] = field(default_factory=dict)

    def sorted_modules(self) -> List[Tuple[str, ResolvedVersion]]:
        """Modules ordered by module id."""
        return sorted(self.modules.items())
