"""
Service layer for mirrorforge.

Services contain the build logic and orchestrate infrastructure calls:
- DiscoveryService: account listing and module classification
- MirrorStore: bare mirror reconciliation
- VersionResolver: latest releasable commit of a mirror
- IdentityResolver: self-declared module ids
- ScriptAssembler: install script rendering
- BuildService: one complete build cycle
- DeployService: commit and push of the script
- NotifyService: reporting of uncovered repositories
"""

from .discovery_service import DiscoveryService
from .mirror_store import MirrorStore
from .version_resolver import VersionResolver, select_tag
from .identity_resolver import IdentityResolver
from .script_assembler import ScriptAssembler
from .build_service import BuildService
from .deploy_service import DeployService, DeploySettings
from .notify_service import NotifyService

__all__ = [
    'DiscoveryService',
    'MirrorStore',
    'VersionResolver',
    'select_tag',
    'IdentityResolver',
    'ScriptAssembler',
    'BuildService',
    'DeployService',
    'DeploySettings',
    'NotifyService',
]
