"""Log-then-delete routine shared by the gone detector and the rule evaluator"""
import time
from typing import Iterable, Optional, TYPE_CHECKING

from git_branch_steward.exceptions import GitBranchStewardError, GitOperationError
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import DeletionOutcome, RecoveryEntry

if TYPE_CHECKING:
    from git_branch_steward.services.git import GitOperations
    from git_branch_steward.services.recovery_log import RecoveryLog

logger = get_logger(__name__)


class BranchDeleter:
    """Deletes branches one by one, recording each in the recovery log first.

    No single failure aborts the batch. A branch is only deleted once its
    recovery entry is safely persisted.
    """

    def __init__(self, backend: 'GitOperations', recovery_log: 'RecoveryLog'):
        self.backend = backend
        self.recovery_log = recovery_log

    async def _deleted_by(self) -> Optional[str]:
        try:
            return await self.backend.user_name()
        except GitOperationError:
            return None

    async def delete_branches(self, names: Iterable[str],
                              reason: Optional[str] = None) -> DeletionOutcome:
        outcome = DeletionOutcome()
        names = list(names)
        if not names:
            return outcome

        deleted_by = await self._deleted_by()
        for name in names:
            try:
                commit_hash = await self.backend.commit_hash(name)
            except GitOperationError as e:
                logger.warning(f"Not deleting {name}: cannot read its commit: {e}")
                outcome.failed.append((name, "commit lookup failed"))
                continue

            entry = RecoveryEntry(
                branch_name=name,
                commit_hash=commit_hash,
                deleted_at=int(time.time()),
                deleted_by=deleted_by,
                reason=reason,
            )
            try:
                self.recovery_log.add(entry)
            except GitBranchStewardError as e:
                logger.error(f"Not deleting {name}: recovery log write failed: {e}")
                outcome.failed.append((name, "recovery log write failed"))
                continue

            try:
                await self.backend.delete_branch(name)
            except GitOperationError as e:
                logger.warning(f"Failed to delete {name}: {e}")
                try:
                    self.recovery_log.remove(name, commit_hash)
                except GitBranchStewardError as log_error:
                    logger.warning(f"Stale recovery entry left for {name}: {log_error}")
                outcome.failed.append((name, e.message or "delete failed"))
                continue

            outcome.deleted.append(name)

        logger.info(f"Batch delete in {self.backend.repo_path}: {outcome.summary()}")
        return outcome
