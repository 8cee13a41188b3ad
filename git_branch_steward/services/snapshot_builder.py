"""Builds the per-pass branch snapshot set"""
import asyncio
import time
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from git_branch_steward.exceptions import GitOperationError, PartialEnrichmentError
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import BranchSnapshot
from git_branch_steward.services.git import RefMetadata
from git_branch_steward.services.health import classify, extract_issue_from_branch

if TYPE_CHECKING:
    from git_branch_steward.config import Config
    from git_branch_steward.services.git import GitOperations
    from git_branch_steward.services.github_service import GitHubService

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400


def days_since(timestamp: int, now: Optional[float] = None) -> int:
    """Whole days elapsed since a unix timestamp; 0 when unknown or in the future."""
    if not timestamp:
        return 0
    now = time.time() if now is None else now
    return max(0, int((now - timestamp) // SECONDS_PER_DAY))


class SnapshotBuilder:
    """Queries the backend and assembles classified snapshots for one repository."""

    def __init__(self, backend: 'GitOperations', config: 'Config',
                 pr_provider: Optional['GitHubService'] = None):
        self.backend = backend
        self.config = config
        self.pr_provider = pr_provider
        # False after a pass that could not list branches at all
        self.available = True

    async def build(self) -> List[BranchSnapshot]:
        """Return every non-protected local branch, worst health first.

        An empty list means the branches could not be listed at all.
        """
        try:
            names = await self.backend.list_branches()
        except GitOperationError as e:
            logger.warning(f"Cannot list branches in {self.backend.repo_path}: {e}")
            self.available = False
            return []
        self.available = True

        protected = set(self.config.protected_branches)
        names = [name for name in names if name not in protected]
        if not names:
            return []

        current = await self._current_branch()
        base = await self._base_branch()
        merged = await self._merged_branches(base)
        metadata = await self._ref_metadata()

        active = [name for name in names if name not in merged and name != current]
        ahead_behind = await self._ahead_behind(base, active)

        now = time.time()
        snapshots = []
        for name in names:
            try:
                meta = metadata.get(name)
                if meta is None:
                    meta = await self._branch_metadata(name)
            except PartialEnrichmentError as e:
                logger.warning(f"Skipping branch: {e}")
                continue

            ahead, behind = ahead_behind.get(name, (0, 0))
            snapshot = BranchSnapshot(
                name=name,
                is_merged=name in merged,
                is_current_branch=name == current,
                days_old=days_since(meta.timestamp, now),
                ahead=ahead,
                behind=behind,
                author=meta.author,
                has_remote=meta.upstream is not None,
                remote_gone=meta.gone,
                tracking_ref=meta.upstream,
                linked_issue=extract_issue_from_branch(name),
                last_commit_timestamp=meta.timestamp,
            )
            snapshots.append(classify(snapshot, self.config.stale_days))

        snapshots = await self._attach_pr_status(snapshots)
        snapshots.sort(key=lambda b: (b.health_score, b.name))
        logger.debug(f"Built {len(snapshots)} snapshots for {self.backend.repo_path}")
        return snapshots

    async def _current_branch(self) -> Optional[str]:
        try:
            return await self.backend.current_branch()
        except GitOperationError as e:
            logger.warning(f"Could not determine current branch: {e}")
            return None

    async def _base_branch(self) -> str:
        try:
            return await self.backend.base_branch(self.config.base_branch)
        except GitOperationError as e:
            fallback = self.config.base_branch or "main"
            logger.warning(f"Could not resolve base branch, using {fallback}: {e}")
            return fallback

    async def _merged_branches(self, base: str) -> Set[str]:
        try:
            return await self.backend.merged_branches(base)
        except GitOperationError as e:
            logger.warning(f"Could not read merged branches against {base}: {e}")
            return set()

    async def _ref_metadata(self) -> Dict[str, RefMetadata]:
        try:
            return await self.backend.ref_metadata()
        except GitOperationError as e:
            logger.warning(f"Batch ref metadata unavailable, using per-branch queries: {e}")
            return {}

    async def _branch_metadata(self, name: str) -> RefMetadata:
        try:
            return await self.backend.branch_metadata(name)
        except GitOperationError as e:
            raise PartialEnrichmentError(name, e.message) from e

    async def _ahead_behind(self, base: str, branches: List[str]) -> Dict[str, Tuple[int, int]]:
        """Ahead/behind counts, fanned out in fixed-size concurrent batches."""
        counts: Dict[str, Tuple[int, int]] = {}
        batch_size = self.config.enrichment_batch_size

        for start in range(0, len(branches), batch_size):
            batch = branches[start:start + batch_size]
            results = await asyncio.gather(
                *(self.backend.ahead_behind(base, name) for name in batch),
                return_exceptions=True,
            )
            for name, result in zip(batch, results):
                if isinstance(result, Exception):
                    logger.debug(f"ahead/behind unavailable for {name}: {result}")
                    counts[name] = (0, 0)
                else:
                    counts[name] = result
        return counts

    async def _attach_pr_status(self, snapshots: List[BranchSnapshot]) -> List[BranchSnapshot]:
        if self.pr_provider is None or not snapshots:
            return snapshots

        try:
            statuses = await self.pr_provider.get_pr_statuses([b.name for b in snapshots])
        except Exception as e:
            logger.debug(f"PR status lookup failed: {e}")
            return snapshots

        return [
            replace(b, pr_status=statuses[b.name]) if b.name in statuses else b
            for b in snapshots
        ]
