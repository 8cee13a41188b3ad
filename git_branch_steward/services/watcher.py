"""Polls git metadata files and turns changes into engine events"""
import asyncio
import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, TYPE_CHECKING

from git_branch_steward.exceptions import GitOperationError
from git_branch_steward.logging_config import get_logger

if TYPE_CHECKING:
    from git_branch_steward.core import ReconciliationEngine

logger = get_logger(__name__)

FETCH_HEAD = "FETCH_HEAD"
ORIG_HEAD = "ORIG_HEAD"


def _mtime(path: Path) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class RepositoryWatcher:
    """Watches ``FETCH_HEAD`` and ``ORIG_HEAD`` of each repository.

    A changed ``FETCH_HEAD`` means a fetch completed. A changed ``ORIG_HEAD``
    means a merge (or, together with ``FETCH_HEAD`` in the same poll, a pull).
    The first poll only records the current state.
    """

    def __init__(self, engine: 'ReconciliationEngine', repo_paths: Iterable[str],
                 poll_interval: float = 1.0):
        self.engine = engine
        self.repo_paths = list(repo_paths)
        self.poll_interval = poll_interval
        self._git_dirs: Dict[str, Path] = {}
        self._seen: Dict[str, Tuple[Optional[float], Optional[float]]] = {}
        self._stopped = False

    async def _git_dir(self, repo_path: str) -> Optional[Path]:
        if repo_path not in self._git_dirs:
            try:
                git_dir = await self.engine.repository(repo_path).backend.git_dir()
            except GitOperationError as e:
                logger.warning(f"Not watching {repo_path}: {e}")
                return None
            self._git_dirs[repo_path] = Path(git_dir)
        return self._git_dirs[repo_path]

    async def poll(self) -> None:
        """Check every repository once and emit events for changed files."""
        for repo_path in self.repo_paths:
            git_dir = await self._git_dir(repo_path)
            if git_dir is None:
                continue

            current = (_mtime(git_dir / FETCH_HEAD), _mtime(git_dir / ORIG_HEAD))
            previous = self._seen.get(repo_path)
            self._seen[repo_path] = current
            if previous is None:
                continue

            fetched = current[0] != previous[0] and current[0] is not None
            merged = current[1] != previous[1] and current[1] is not None

            if fetched:
                logger.debug(f"{repo_path}: fetch detected")
                self.engine.on_fetch_completed(repo_path)
            if merged:
                event = "pull" if fetched else "merge"
                logger.debug(f"{repo_path}: {event} detected")
                self.engine.on_event_triggered(repo_path, event)
            elif fetched:
                self.engine.on_event_triggered(repo_path, "fetch")

    async def run(self) -> None:
        """Poll until ``stop()`` is called."""
        logger.info(f"Watching {len(self.repo_paths)} repositories")
        while not self._stopped:
            await self.poll()
            await asyncio.sleep(self.poll_interval)

    def stop(self) -> None:
        self._stopped = True
