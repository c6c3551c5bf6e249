"""
Discovery service for mirrorforge.

Fetches the public repositories of every configured account and
classifies them into modules using the configured patterns.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

from ..domain import Account, Classification, ModuleSpec, RepoCandidate, UnknownRepo, valid_module_id
from ..infra.github_client import GitHubClient

logger = logging.getLogger(__name__)


class DiscoveryService:
    """
    Discovers module repositories.

    Example:
        service = DiscoveryService(GitHubClient())
        repos = service.fetch_accounts([spec.account for spec in specs])
        if repos is not None:
            result = service.classify(specs, repos)
            print(sorted(result.assignments))
    """

    def __init__(self, github: Optional[GitHubClient] = None):
        self.github = github or GitHubClient()

    def fetch_accounts(self, accounts: Iterable[Account]) -> Optional[Dict[Account, List[str]]]:
        """
        Fetch repository names of all accounts concurrently.

        A single failing account fails the whole step, but every
        account is still fetched to completion.

        Returns:
            account -> sorted repository names, or None on any failure
        """
        unique = list(dict.fromkeys(accounts))
        if not unique:
            return {}

        def fetch_one(account: Account):
            logger.info(f"Fetching repos of GitHub {account.kind.value} {account.name}")
            return account, self.github.list_public_repos(account)

        repos: Dict[Account, List[str]] = {}
        ok = True

        with ThreadPoolExecutor(max_workers=len(unique)) as executor:
            for account, names in executor.map(fetch_one, unique):
                if names is None:
                    ok = False
                else:
                    logger.debug(f"{account.name} has {len(names)} public repos")
                    repos[account] = names

        return repos if ok else None

    def classify(
        self,
        specs: Sequence[ModuleSpec],
        repos: Dict[Account, List[str]],
        exclude: Iterable[str] = ()
    ) -> Classification:
        """
        Match discovered repositories against module patterns.

        Candidates are processed sorted by (account, repository name);
        for each candidate the account's specs are tried in configuration
        order and the first matching pattern decides. The first
        candidate to claim a module id keeps it. A pattern whose group
        captures nothing marks the repository as deliberately ignored.

        Args:
            specs: Configured module specs
            repos: Output of fetch_accounts()
            exclude: `owner/name` strings never treated as candidates

        Returns:
            Classification
        """
        excluded = {name.lower() for name in exclude}
        specs_by_account: Dict[str, List[ModuleSpec]] = {}
        for spec in specs:
            specs_by_account.setdefault(spec.account.name, []).append(spec)

        candidates = sorted(
            RepoCandidate(account.name, name)
            for account, names in repos.items()
            for name in names
        )

        result = Classification()

        for candidate in dict.fromkeys(candidates):
            if candidate.full_name.lower() in excluded:
                continue

            account_specs = specs_by_account.get(candidate.account, [])
            matched = False

            for spec in account_specs:
                matched, module_id = spec.match(candidate.name)
                if not matched:
                    continue

                if not module_id:
                    logger.debug(f"Ignoring {candidate.full_name} (empty module name)")
                elif not valid_module_id(module_id):
                    logger.warning(f"Ignoring {candidate.full_name} (bad module name {module_id!r})")
                elif module_id in result.assignments:
                    winner = result.assignments[module_id]
                    logger.warning(
                        f"Module {module_id} claimed by both {winner.full_name} and "
                        f"{candidate.full_name}, keeping {winner.full_name}"
                    )
                else:
                    result.assignments[module_id] = candidate
                break

            if matched:
                continue

            if any(spec.self_declared for spec in account_specs):
                result.self_declared.append(candidate)
            result.unknown.add(UnknownRepo(candidate.account, candidate.name))

        logger.info(
            f"Classified {len(candidates)} repos: {len(result.assignments)} modules, "
            f"{len(result.self_declared)} to identify, {len(result.unknown)} unknown"
        )
        return result
