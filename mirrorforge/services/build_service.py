"""
Build orchestration for mirrorforge.

One build cycle:
1. Discover the accounts' repositories and classify them into modules
2. Reconcile the mirror store with the framework and module remotes
3. Resolve every mirror's pinned version (and self-declared module id)
4. Assemble the install script

Any failure yields no script at all. The only state carried from one
cycle to the next is the mirror directory.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..domain import (
    BuildPlan,
    MirrorEntry,
    ModuleSpec,
    RepoCandidate,
    ResolvedVersion,
    UnknownRepo,
    mirror_key,
    valid_module_id,
    GITHUB_PREFIX,
    GITHUB_SUFFIX,
)
from ..infra.git_client import GitClient
from ..infra.github_client import GitHubClient
from ..infra.process_runner import ExecutionContext
from .discovery_service import DiscoveryService
from .identity_resolver import IdentityResolver
from .mirror_store import MirrorStore
from .script_assembler import ScriptAssembler
from .version_resolver import VersionResolver

logger = logging.getLogger(__name__)

MIRRORS_DIR = "mirrors"
TEMP_DIR = "tmp"


@dataclass
class _Unit:
    """One mirror to resolve."""
    full_name: str
    remote: str
    module_id: Optional[str] = None
    identify: bool = False


class BuildService:
    """
    Runs build cycles.

    Example:
        service = BuildService(framework="Icinga/icingaweb2", specs=specs,
                               context=ExecutionContext())
        script = service.build()
        if script is None:
            print("Build failed")
        for repo in service.last_unknown:
            print(repo.full_name)
    """

    def __init__(
        self,
        framework: str,
        specs: Sequence[ModuleSpec],
        context: ExecutionContext,
        workdir: Path = Path("."),
        target: str = "icingaweb2",
        github: Optional[GitHubClient] = None,
        remote_prefix: str = GITHUB_PREFIX,
        git: Optional[GitClient] = None
    ):
        """
        Initialize BuildService.

        Args:
            framework: Framework repository as `owner/name`
            specs: Module specs in configuration order
            context: Shared execution context
            workdir: Directory holding `mirrors/` and `tmp/`
            target: Install directory used by the generated script
            github: GitHub client (creates new if None)
            remote_prefix: Prefix that turns `owner/name` into a clone URL
            git: Git client (creates new if None)
        """
        self.framework = framework.strip()
        self.specs = list(specs)
        self.context = context
        self.workdir = Path(workdir)
        self.remote_prefix = remote_prefix

        self.git = git or GitClient(context)
        self.discovery = DiscoveryService(github or GitHubClient())
        self.store = MirrorStore(self.workdir / MIRRORS_DIR, self.workdir / TEMP_DIR, self.git)
        self.versions = VersionResolver(self.git)
        self.identities = IdentityResolver(self.git)
        self.assembler = ScriptAssembler(target=target)

        self.last_plan: Optional[BuildPlan] = None
        self.last_unknown: List[UnknownRepo] = []

    def remote_for(self, full_name: str) -> str:
        """Clone URL of `owner/name`."""
        return f"{self.remote_prefix}{full_name}{GITHUB_SUFFIX}"

    def build(self) -> Optional[bytes]:
        """
        Run one build cycle.

        Returns:
            Script bytes, or None if any stage failed
        """
        self.last_plan = None
        self.last_unknown = []

        repos = self.discovery.fetch_accounts(spec.account for spec in self.specs)
        if repos is None:
            logger.error("Couldn't discover module repositories")
            return None

        classification = self.discovery.classify(self.specs, repos, exclude=[self.framework])

        units: Dict[str, _Unit] = {
            mirror_key(self.framework): _Unit(self.framework, self.remote_for(self.framework))
        }
        for module_id, candidate in classification.assignments.items():
            units[mirror_key(candidate.full_name)] = self._unit(candidate, module_id=module_id)
        for candidate in classification.self_declared:
            units[mirror_key(candidate.full_name)] = self._unit(candidate, identify=True)

        mirrors = self.store.reconcile({key: unit.remote for key, unit in units.items()})
        if mirrors is None:
            logger.error("Couldn't update mirrors")
            return None

        resolved = self._resolve_all(units, mirrors)
        if resolved is None:
            logger.error("Couldn't resolve versions")
            return None

        framework = resolved[mirror_key(self.framework)]

        modules: Dict[str, ResolvedVersion] = {}
        for module_id, candidate in classification.assignments.items():
            modules[module_id] = resolved[mirror_key(candidate.full_name)]

        identified = set()
        for candidate in classification.self_declared:
            version = resolved[mirror_key(candidate.full_name)]
            if not version.module_id:
                continue
            identified.add(UnknownRepo(candidate.account, candidate.name))
            if version.module_id in modules:
                logger.warning(
                    f"{candidate.full_name} declares module {version.module_id}, "
                    f"which is already taken"
                )
                continue
            modules[version.module_id] = version

        self.last_unknown = sorted(classification.unknown - identified)
        self.last_plan = BuildPlan(framework=framework, modules=modules)

        logger.info(f"Assembling script for {len(modules)} modules")
        return self.assembler.assemble(self.last_plan)

    def _unit(self, candidate: RepoCandidate, module_id: Optional[str] = None, identify: bool = False) -> _Unit:
        return _Unit(
            full_name=candidate.full_name,
            remote=self.remote_for(candidate.full_name),
            module_id=module_id,
            identify=identify,
        )

    def _resolve_all(
        self,
        units: Dict[str, _Unit],
        mirrors: Dict[str, MirrorEntry]
    ) -> Optional[Dict[str, ResolvedVersion]]:
        """Resolve all mirrors concurrently; None if any failed."""
        with ThreadPoolExecutor(max_workers=len(units)) as executor:
            futures = {
                key: executor.submit(self._resolve_one, unit, mirrors[key])
                for key, unit in units.items()
            }
            results = {key: future.result() for key, future in futures.items()}

        if any(version is None for version in results.values()):
            return None
        return results

    def _resolve_one(self, unit: _Unit, mirror: MirrorEntry) -> Optional[ResolvedVersion]:
        version = self.versions.resolve(str(mirror.path), unit.remote)
        if version is None:
            return None

        if unit.module_id:
            return version.with_module_id(unit.module_id)

        if unit.identify:
            module_id = self.identities.identify_version(str(mirror.path), version)
            if module_id is None:
                return None
            if module_id and not valid_module_id(module_id):
                logger.warning(f"{unit.full_name} declares bad module name {module_id!r}")
                module_id = ""
            if not module_id:
                logger.debug(f"{unit.full_name} is not a module")
            return version.with_module_id(module_id)

        return version
