"""Per-repository bundle of services"""
import asyncio
from dataclasses import dataclass
from typing import List, Optional

from git_branch_steward.exceptions import GitOperationError
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import BranchSnapshot
from git_branch_steward.services.branch_deleter import BranchDeleter
from git_branch_steward.services.git import GitOperations
from git_branch_steward.services.github_service import GitHubService
from git_branch_steward.services.recovery_log import RecoveryLog
from git_branch_steward.services.rule_service import RuleService
from git_branch_steward.services.snapshot_builder import SnapshotBuilder

logger = get_logger(__name__)


@dataclass
class RepositoryContext:
    """Everything the engine holds for one repository path."""
    repo_path: str
    backend: GitOperations
    builder: SnapshotBuilder
    recovery_log: RecoveryLog
    rules: RuleService
    deleter: BranchDeleter
    github: Optional[GitHubService] = None
    github_ready: bool = False

    async def _setup_github(self) -> None:
        self.github_ready = True
        try:
            remote_url = await self.backend.remote_url()
        except GitOperationError as e:
            logger.debug(f"[GitHub] No remote URL for {self.repo_path}: {e}")
            return
        await asyncio.to_thread(self.github.setup_github_api, remote_url)
        if self.github.github_enabled:
            self.builder.pr_provider = self.github

    async def snapshots(self) -> List[BranchSnapshot]:
        """Build a fresh snapshot set, wiring up PR lookups on first use."""
        if self.github is not None and not self.github_ready:
            await self._setup_github()
        return await self.builder.build()

    def close(self) -> None:
        if self.github is not None:
            self.github.close()
