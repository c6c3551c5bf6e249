"""
Build scheduling for mirrorforge.

Runs build cycles on a cron schedule and reloads the configuration
whenever its file changes. A cycle cleans the temporary workspace,
builds, deploys the script if there is one and reports uncovered
repositories.
"""

import logging
import shutil
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from croniter import croniter
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .config import Settings, configure_logging, load_settings
from .domain import UnknownRepo
from .exit_codes import ConfigError
from .infra.github_client import GitHubClient
from .infra.process_runner import ExecutionContext
from .services.build_service import BuildService, MIRRORS_DIR, TEMP_DIR
from .services.deploy_service import DeployService
from .services.notify_service import NotifyService

logger = logging.getLogger(__name__)

RELOAD_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}


class ConfigChangeHandler(FileSystemEventHandler):
    """Sets an event whenever the watched config file changes."""

    def __init__(self, path: Path, changed: threading.Event):
        super().__init__()
        self.path = path.resolve()
        self.changed = changed

    def _is_config(self, path) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode('utf-8', errors='replace')
        return Path(path).resolve() == self.path

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in RELOAD_EVENTS or event.is_directory:
            return
        if self._is_config(event.src_path) or self._is_config(getattr(event, 'dest_path', None)):
            logger.debug(f"Config file changed ({event.event_type})")
            self.changed.set()


def next_build_time(schedule: str, now: Optional[datetime] = None) -> datetime:
    """Next point in time the cron schedule fires after now."""
    return croniter(schedule, now or datetime.now()).get_next(datetime)


@dataclass
class CycleResult:
    """Outcome of one build cycle."""
    script: Optional[bytes] = None
    deployed: Optional[bool] = None
    unknown: List[UnknownRepo] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.script is not None and self.deployed is not False


def run_once(settings: Settings, context: ExecutionContext, deploy: bool = True) -> CycleResult:
    """
    Run one build cycle.

    Args:
        settings: Validated configuration
        context: Shared execution context
        deploy: Push the script when the deploy section is configured

    Returns:
        CycleResult; `script` is None if the build failed and
        `deployed` is None if no deploy was attempted
    """
    result = CycleResult()
    temp = settings.workdir / TEMP_DIR
    logger.info(f"Removing dir {temp}")
    shutil.rmtree(temp, ignore_errors=True)
    try:
        temp.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Couldn't create dir {temp}: {e}")
        return result

    logger.info("Building")
    service = BuildService(
        framework=settings.framework,
        specs=settings.specs,
        context=context,
        workdir=settings.workdir,
        target=settings.target,
        github=GitHubClient(token=settings.github_token or None),
        remote_prefix=settings.github_url,
    )
    result.script = service.build()
    if result.script is None:
        return result

    if deploy and settings.deploy is not None:
        logger.info("Deploying")
        result.deployed = DeployService(settings.deploy, context, settings.workdir).deploy(result.script)
        if not result.deployed:
            logger.error("Deploy failed")

    result.unknown = NotifyService(
        context, settings.workdir / MIRRORS_DIR, email=settings.notify_email
    ).notify(service.last_unknown)
    return result


class Scheduler:
    """
    Long-running build loop.

    Example:
        context = ExecutionContext()
        context.install_signal_handlers()
        Scheduler(Path("config.yml"), context).run()
    """

    def __init__(self, config_path: Path, context: ExecutionContext):
        self.config_path = Path(config_path)
        self.context = context
        self._changed = threading.Event()
        self._stopped = threading.Event()

    def stop(self) -> None:
        """Leave run() after the current cycle."""
        self._stopped.set()
        self._changed.set()

    def _load(self) -> Optional[Settings]:
        try:
            return load_settings(self.config_path)
        except ConfigError as e:
            logger.error(f"Not scheduling builds, bad config: {e}")
            return None

    def run(self) -> None:
        """Schedule builds until stop() is called."""
        handler = ConfigChangeHandler(self.config_path, self._changed)
        observer = Observer()
        watch_dir = self.config_path.resolve().parent
        logger.debug(f"Watching {watch_dir}")
        observer.schedule(handler, str(watch_dir), recursive=False)
        observer.start()

        try:
            while not self._stopped.is_set():
                self._changed.clear()
                settings = self._load()
                if settings is None:
                    self._changed.wait()
                    continue

                configure_logging(settings.log_level)
                self._build_loop(settings)
        finally:
            observer.stop()
            observer.join()

    def _build_loop(self, settings: Settings) -> None:
        """Build on schedule until the config changes."""
        while not self._stopped.is_set():
            next_build = next_build_time(settings.schedule)
            logger.info(f"Scheduling next build at {next_build.isoformat()}")

            while True:
                delay = (next_build - datetime.now()).total_seconds()
                if delay <= 0:
                    break
                if self._changed.wait(timeout=delay):
                    logger.info("Reloading config")
                    return

            run_once(settings, self.context)
