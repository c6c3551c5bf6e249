"""
Mirror store for mirrorforge.

Owns the directory of bare mirrors and keeps it in exact
correspondence with the set of remotes a build cycle expects:
missing mirrors are created, present ones fetched, obsolete ones
deleted. Nothing else writes into the mirror directory.
"""

import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

from ..domain import MirrorEntry
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)


class MirrorStore:
    """
    Set of bare mirrors under one root directory.

    Example:
        store = MirrorStore(Path("mirrors"), Path("tmp"), git)
        mirrors = store.reconcile({mirror_key("a/b"): "https://github.com/a/b.git"})
        if mirrors is None:
            print("At least one mirror failed")
    """

    def __init__(self, root: Path, temp_root: Path, git: GitClient):
        """
        Initialize MirrorStore.

        Args:
            root: Directory holding one bare mirror per key
            temp_root: Scratch directory for staging new mirrors; must be
                on the same filesystem as root
            git: Git client
        """
        self.root = Path(root)
        self.temp_root = Path(temp_root)
        self.git = git

    def path_for(self, key: str) -> Path:
        return self.root / key

    def reconcile(self, expected: Dict[str, str]) -> Optional[Dict[str, MirrorEntry]]:
        """
        Bring the mirror directory in line with the expected set.

        Every expected mirror is ensured concurrently while obsolete
        entries are pruned alongside. No unit cancels another: all run
        to completion, then the results are combined.

        Args:
            expected: mirror key -> remote URL

        Returns:
            mirror key -> MirrorEntry, or None if any mirror failed
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Couldn't create dir {self.root}: {e}")
            return None

        with ThreadPoolExecutor(max_workers=len(expected) + 1) as executor:
            pruned = executor.submit(self.prune_obsolete, set(expected))
            futures = {
                key: executor.submit(self.ensure_mirror, remote, self.path_for(key))
                for key, remote in expected.items()
            }

            ok = True
            mirrors: Dict[str, MirrorEntry] = {}
            for key, future in futures.items():
                if future.result():
                    mirrors[key] = MirrorEntry(key, expected[key], self.path_for(key))
                else:
                    ok = False

            # Deletions are best effort; only wait for them
            pruned.result()

        return mirrors if ok else None

    def ensure_mirror(self, remote: str, local: Path) -> bool:
        """
        Make sure a bare mirror of remote exists at local and is fresh.

        A new mirror is initialized in a temporary directory and renamed
        into place, so a half-initialized mirror is never visible.

        Returns:
            True if the mirror exists and was fetched
        """
        logger.info(f"Fetching Git repo {remote} into {local}")

        try:
            os.stat(local)
        except FileNotFoundError:
            if not self._create_mirror(remote, local):
                return False
        except OSError as e:
            logger.error(f"Stat error on {local}: {e}")
            return False

        return self.git.fetch(str(local), "origin")

    def _create_mirror(self, remote: str, local: Path) -> bool:
        logger.debug(f"Initializing Git repo {local}")

        try:
            self.temp_root.mkdir(parents=True, exist_ok=True)
            staging = tempfile.mkdtemp(dir=self.temp_root)
        except OSError as e:
            logger.error(f"Couldn't create temp dir in {self.temp_root}: {e}")
            return False

        try:
            if not self.git.init_bare(staging):
                return False
            if not self.git.add_mirror_remote(staging, remote):
                return False

            try:
                os.rename(staging, local)
            except OSError as e:
                logger.error(f"Couldn't rename {staging} to {local}: {e}")
                return False

            return True
        finally:
            if os.path.exists(staging):
                shutil.rmtree(staging, ignore_errors=True)

    def prune_obsolete(self, expected: set) -> List[str]:
        """
        Delete every entry of the mirror directory not in expected.

        Returns:
            Names of the entries that were removed
        """
        logger.debug(f"Listing dir {self.root}")

        try:
            entries = sorted(os.listdir(self.root))
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Couldn't list dir {self.root}: {e}")
            return []

        obsolete = [name for name in entries if name not in expected]
        if not obsolete:
            return []

        with ThreadPoolExecutor(max_workers=len(obsolete)) as executor:
            removed = list(executor.map(self._remove_one, obsolete))

        return [name for name, ok in zip(obsolete, removed) if ok]

    def _remove_one(self, name: str) -> bool:
        path = self.path_for(name)
        logger.info(f"Removing dir {path}")

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            logger.warning(f"Couldn't remove {path}: {e}")
            return False

        return True
