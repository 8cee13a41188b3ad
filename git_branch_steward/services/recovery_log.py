"""Recovery log: the undo trail for deleted branches"""
from typing import List, Optional, TYPE_CHECKING

from git_branch_steward.constants import MAX_RECOVERY_ENTRIES, STATE_KEY_RECOVERY
from git_branch_steward.exceptions import (
    NameCollisionError,
    ObjectMissingError,
    RecoveryEntryNotFoundError,
)
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import RecoveryEntry

if TYPE_CHECKING:
    from git_branch_steward.services.git import GitOperations
    from git_branch_steward.services.state_store import StateStore

logger = get_logger(__name__)


class RecoveryLog:
    """Capped, newest-first ledger of deleted branches for one repository.

    Entries are written before a branch is deleted and removed when the branch
    is restored or the entry is dismissed. The log holds at most
    ``max_entries``; adding beyond that evicts the oldest entry.
    """

    def __init__(self, repo_path: str, store: 'StateStore', backend: 'GitOperations',
                 max_entries: int = MAX_RECOVERY_ENTRIES):
        self.repo_path = repo_path
        self.store = store
        self.backend = backend
        self.max_entries = max_entries

    def _parse(self, raw) -> List[RecoveryEntry]:
        entries = []
        for item in raw or []:
            try:
                entries.append(RecoveryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring malformed recovery entry {item!r}: {e}")
        return entries

    def add(self, entry: RecoveryEntry) -> None:
        """Record a deletion as the newest entry.

        Raises:
            StateStoreError: If the log cannot be persisted
        """
        def prepend(raw):
            log = [entry.to_dict()] + list(raw or [])
            return log[:self.max_entries]

        self.store.update(self.repo_path, STATE_KEY_RECOVERY, prepend, default=[])
        logger.debug(f"Recorded {entry.branch_name} at {entry.commit_hash[:12]} in recovery log")

    def list(self) -> List[RecoveryEntry]:
        """All entries, newest first."""
        return self._parse(self.store.get(self.repo_path, STATE_KEY_RECOVERY, []))

    def latest(self) -> Optional[RecoveryEntry]:
        entries = self.list()
        return entries[0] if entries else None

    def find(self, branch_name: str, commit_hash: Optional[str] = None) -> Optional[RecoveryEntry]:
        """Newest entry for ``branch_name``, optionally pinned to a commit.

        ``commit_hash`` may be an abbreviated SHA.
        """
        for entry in self.list():
            if entry.branch_name != branch_name:
                continue
            if commit_hash is None or entry.commit_hash.startswith(commit_hash):
                return entry
        return None

    def remove(self, branch_name: str, commit_hash: str) -> bool:
        """Drop the entry matching both name and hash. Returns True if one was removed."""
        removed = []

        def drop(raw):
            kept = []
            for item in raw or []:
                try:
                    matched = RecoveryEntry.from_dict(item).matches(branch_name, commit_hash)
                except (KeyError, TypeError, ValueError):
                    matched = False
                if matched:
                    removed.append(item)
                else:
                    kept.append(item)
            return kept

        self.store.update(self.repo_path, STATE_KEY_RECOVERY, drop, default=[])
        return bool(removed)

    def dismiss(self, branch_name: str, commit_hash: str) -> None:
        """Forget a deletion without restoring it.

        Raises:
            RecoveryEntryNotFoundError: If no entry matches
        """
        if not self.remove(branch_name, commit_hash):
            raise RecoveryEntryNotFoundError(branch_name, commit_hash)
        logger.info(f"Dismissed recovery entry for {branch_name}")

    def clear(self) -> None:
        self.store.set(self.repo_path, STATE_KEY_RECOVERY, [])

    async def restore(self, branch_name: str, commit_hash: str) -> None:
        """Recreate a deleted branch at its recorded commit.

        Never overwrites an existing branch. On success the matching entry is
        removed from the log.

        Raises:
            ObjectMissingError: If the commit has been garbage-collected
            NameCollisionError: If a branch with that name already exists
        """
        if not await self.backend.object_exists(commit_hash):
            raise ObjectMissingError(branch_name, commit_hash)
        if await self.backend.branch_exists(branch_name):
            raise NameCollisionError(branch_name)

        await self.backend.create_branch_at(branch_name, commit_hash)
        self.remove(branch_name, commit_hash)
        logger.info(f"Restored {branch_name} at {commit_hash[:12]}")

    async def undo_last(self) -> RecoveryEntry:
        """Restore the most recent deletion.

        Raises:
            RecoveryEntryNotFoundError: If the log is empty
            ObjectMissingError, NameCollisionError: As for ``restore``
        """
        entry = self.latest()
        if entry is None:
            raise RecoveryEntryNotFoundError("(any branch)")
        await self.restore(entry.branch_name, entry.commit_hash)
        return entry
