"""
mirrorforge - Install script builder for Icinga Web 2 modules.

Quick Start:
    from mirrorforge import BuildService, ExecutionContext, load_settings

    settings = load_settings(Path("config.yml"))
    service = BuildService(settings.framework, settings.specs, ExecutionContext())
    script = service.build()

Command line:
    mirrorforge run            # build and deploy on schedule
    mirrorforge build          # one build, script on stdout
    mirrorforge discover       # show module classification
    mirrorforge check-config   # validate config.yml
"""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .domain import BuildPlan, ModuleSpec, ResolvedVersion, UnknownRepo
from .infra import ExecutionContext
from .services import BuildService, DeployService, NotifyService
from .scheduler import Scheduler, run_once

__all__ = [
    '__version__',
    'Settings',
    'load_settings',
    'BuildPlan',
    'ModuleSpec',
    'ResolvedVersion',
    'UnknownRepo',
    'ExecutionContext',
    'BuildService',
    'DeployService',
    'NotifyService',
    'Scheduler',
    'run_once',
]
