"""
Deploy service for mirrorforge.

Commits a generated script into a git repository and pushes it.
The deploy clone lives in `<workdir>/deploy` and is reused between
cycles; it is reset to the remote state before every deploy.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from ..infra.git_client import GitClient
from ..infra.process_runner import ExecutionContext

logger = logging.getLogger(__name__)

DEPLOY_DIR = "deploy"


@dataclass
class DeploySettings:
    """Where and how to deploy the script."""
    remote: str
    script: str
    commit: str
    config: Dict[str, str] = field(default_factory=dict)


def write_atomic(path: Path, content: bytes, mode: int = 0o755) -> None:
    """Write a file via a temp file in the same directory and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")

    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(content)
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class DeployService:
    """
    Pushes scripts to the deploy repository.

    Example:
        service = DeployService(settings.deploy, ExecutionContext(), Path("."))
        if not service.deploy(script):
            print("Deploy failed")
    """

    def __init__(self, settings: DeploySettings, context: ExecutionContext, workdir: Path = Path(".")):
        self.settings = settings
        self.workdir = Path(workdir)
        self.path = self.workdir / DEPLOY_DIR
        self.temp_root = self.workdir / "tmp"
        self.git = GitClient(context, config=settings.config)

    def _ensure_clone(self) -> bool:
        try:
            os.stat(self.path)
            return True
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Stat error on {self.path}: {e}")
            return False

        logger.debug(f"Cloning {self.settings.remote} into {self.path}")

        try:
            self.temp_root.mkdir(parents=True, exist_ok=True)
            staging = tempfile.mkdtemp(dir=self.temp_root)
        except OSError as e:
            logger.error(f"Couldn't create temp dir in {self.temp_root}: {e}")
            return False

        try:
            if not self.git.clone(self.settings.remote, staging):
                return False
            try:
                os.rename(staging, self.path)
            except OSError as e:
                logger.error(f"Couldn't rename {staging} to {self.path}: {e}")
                return False
            return True
        finally:
            if os.path.exists(staging):
                shutil.rmtree(staging, ignore_errors=True)

    def deploy(self, script: bytes) -> bool:
        """
        Commit and push a script.

        Nothing is committed if the script did not change, but the
        branch is pushed either way.

        Returns:
            True if the deploy repository is up to date with the script
        """
        logger.info(f"Pulling Git repo {self.settings.remote} into {self.path}")
        path = str(self.path)

        if not self._ensure_clone():
            return False
        if not self.git.set_remote_url(path, self.settings.remote):
            return False
        if not self.git.reset_hard(path):
            return False
        if not self.git.pull_rebase(path):
            return False

        target = self.path / self.settings.script
        logger.debug(f"Writing file {target}")
        try:
            write_atomic(target, script)
        except OSError as e:
            logger.error(f"Couldn't write file {target}: {e}")
            return False

        if not self.git.add(path, [self.settings.script]):
            return False

        status = self.git.status_short(path)
        if status is None:
            return False
        if status:
            if not self.git.commit(path, self.settings.commit):
                return False
        else:
            logger.info("Script unchanged, nothing to commit")

        # Also pushes commits a previous failed push left behind
        logger.info(f"Pushing script to {self.settings.remote}")
        return self.git.push(path)
