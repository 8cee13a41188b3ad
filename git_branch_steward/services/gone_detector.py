"""Detects branches whose upstream was deleted"""
from typing import Callable, Dict, Iterable, List, Optional, Set, TYPE_CHECKING

from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import BranchSnapshot, DeletionOutcome, GoneAction
from git_branch_steward.presenters import resolve
from git_branch_steward.utils import KeyedDebouncer

if TYPE_CHECKING:
    from git_branch_steward.config import Config
    from git_branch_steward.presenters import Presenter
    from git_branch_steward.services.repository_context import RepositoryContext

logger = get_logger(__name__)

GONE_REASON = "remote branch deleted"


def gone_message(branches: List[BranchSnapshot]) -> str:
    if len(branches) == 1:
        return f'Branch "{branches[0].name}" is orphaned: its remote was deleted'
    return f"{len(branches)} branches are orphaned: their remotes were deleted"


class GoneDetector:
    """Reports branches that became remote-gone since the last check.

    ``known_gone`` remembers, per repository, which branches were already gone
    at the previous check so each branch is reported once. Detection runs are
    debounced per repository after fetch events.
    """

    def __init__(self, config: 'Config', presenter: 'Presenter',
                 repositories: Callable[[str], 'RepositoryContext']):
        self.config = config
        self.presenter = presenter
        self.repositories = repositories
        self.known_gone: Dict[str, Set[str]] = {}
        self._debouncer = KeyedDebouncer(config.debounce_seconds, self.detect_and_handle)

    async def initialize(self, repo_paths: Iterable[str]) -> None:
        """Seed ``known_gone`` so branches gone at startup are not reported."""
        for repo_path in repo_paths:
            context = self.repositories(repo_path)
            snapshots = await context.snapshots()
            if not context.builder.available:
                logger.warning(f"Skipping gone-branch seed for {repo_path}")
                continue
            self.known_gone[repo_path] = {
                b.name for b in snapshots if b.remote_gone and not b.is_current_branch
            }
            logger.debug(f"{repo_path}: {len(self.known_gone[repo_path])} branches already gone")

    def on_fetch_completed(self, repo_path: str) -> None:
        """Schedule a debounced detection run for ``repo_path``."""
        self._debouncer.trigger(repo_path)

    async def detect(self, repo_path: str,
                     snapshots: Optional[List[BranchSnapshot]] = None) -> List[BranchSnapshot]:
        """Return branches gone now that were not gone at the last check.

        The remembered set is replaced with the current one on every call,
        whether or not anything new was found. A pass that could not list
        branches leaves it untouched.
        """
        if snapshots is None:
            context = self.repositories(repo_path)
            snapshots = await context.snapshots()
            if not context.builder.available:
                return []

        gone_now = [b for b in snapshots if b.remote_gone and not b.is_current_branch]
        previously = self.known_gone.get(repo_path, set())
        newly_gone = [b for b in gone_now if b.name not in previously]
        self.known_gone[repo_path] = {b.name for b in gone_now}

        if newly_gone:
            logger.info(f"{repo_path}: newly gone {[b.name for b in newly_gone]}")
        return newly_gone

    async def handle(self, repo_path: str,
                     newly_gone: List[BranchSnapshot]) -> Optional[DeletionOutcome]:
        """Apply the configured response; returns the outcome if anything was deleted."""
        if not newly_gone:
            return None

        action = self.config.gone_branch_action
        message = gone_message(newly_gone)

        if action == "auto-delete":
            return await self._delete(repo_path, [b.name for b in newly_gone])

        if action == "notify-only":
            await resolve(self.presenter.notify(message))
            return None

        choice = await resolve(self.presenter.choose_gone_action(message, newly_gone))
        if isinstance(choice, str):
            choice = GoneAction(choice) if choice in {a.value for a in GoneAction} else None
        if choice == GoneAction.CLEAN_ALL:
            return await self._delete(repo_path, [b.name for b in newly_gone])
        if choice == GoneAction.PREVIEW:
            selected = await resolve(self.presenter.select_branches(
                "Select orphaned branches to delete (all pre-selected)", newly_gone
            ))
            if not selected:
                return None
            chosen = set(selected)
            return await self._delete(repo_path, [b.name for b in newly_gone if b.name in chosen])

        # Dismissed branches stay in known_gone and are not reported again
        logger.debug(f"{repo_path}: gone branches dismissed")
        return None

    async def _delete(self, repo_path: str, names: List[str]) -> DeletionOutcome:
        outcome = await self.repositories(repo_path).deleter.delete_branches(names, GONE_REASON)
        known = self.known_gone.get(repo_path)
        if known is not None:
            known.difference_update(outcome.deleted)
        if outcome.attempted:
            await resolve(self.presenter.notify(f"Orphaned branches: {outcome.summary()}"))
        return outcome

    async def detect_and_handle(self, repo_path: str) -> Optional[DeletionOutcome]:
        newly_gone = await self.detect(repo_path)
        return await self.handle(repo_path, newly_gone)

    def pending(self, repo_path: str) -> bool:
        return self._debouncer.pending(repo_path)

    async def drain(self) -> None:
        await self._debouncer.drain()

    def close(self) -> None:
        """Cancel pending detection runs; a running one completes."""
        self._debouncer.close()
