"""
Module discovery domain objects for mirrorforge.

An Account owns public repositories; a ModuleSpec says which of them
are modules (via patterns with one capturing group) and what module
id each maps to. Discovery turns these into RepoCandidates, a module
assignment and a set of UnknownRepos.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

GITHUB_PREFIX = "https://github.com/"
GITHUB_SUFFIX = ".git"


class AccountKind(Enum):
    """Kind of source-hosting account."""
    USER = "user"
    ORG = "org"


@dataclass(frozen=True)
class Account:
    """A GitHub user or organization whose public repositories are scanned."""
    name: str
    kind: AccountKind = AccountKind.USER

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ModuleSpec:
    """
    One configured `mods` entry.

    Attributes:
        account: Account whose repositories are matched
        patterns: Compiled patterns, each with exactly one capturing group
        self_declared: Repositories no pattern matched may still declare
            their module id in their metadata file
    """
    account: Account
    patterns: Tuple[re.Pattern, ...] = ()
    self_declared: bool = False

    def match(self, repo_name: str) -> Tuple[bool, str]:
        """
        Match a repository name against the patterns in order.

        Returns:
            (matched, captured) for the first matching pattern,
            (False, "") if none matched
        """
        for pattern in self.patterns:
            m = pattern.search(repo_name)
            if m is not None:
                return True, m.group(1) or ""
        return False, ""


@dataclass(frozen=True, order=True)
class RepoCandidate:
    """A repository discovered under an account."""
    account: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.account}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {'owner': self.account, 'repo': self.name}


@dataclass(frozen=True, order=True)
class UnknownRepo:
    """A discovered repository no pattern covered."""
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"{GITHUB_PREFIX}{self.full_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {'owner': self.owner, 'repo': self.name}


@dataclass
class Classification:
    """
    Result of matching discovered repositories against module specs.

    Attributes:
        assignments: module id -> candidate, first match wins
        unknown: candidates no pattern matched
        self_declared: unmatched candidates of self-declaring accounts,
            in sorted order; they get mirrored and identified by metadata
    """
    assignments: Dict[str, RepoCandidate] = field(default_factory=dict)
    unknown: set = field(default_factory=set)
    self_declared: List[RepoCandidate] = field(default_factory=list)

    def sorted_unknown(self) -> List[UnknownRepo]:
        return sorted(self.unknown)


def valid_module_id(module_id: str) -> bool:
    """Module ids become directory names; reject anything that is not one."""
    return bool(module_id) and module_id not in (".", "..") and "/" not in module_id and "\0" not in module_id
