"""Evaluates cleanup rules and drives the dry-run deletion flow"""
from typing import Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from git_branch_steward.exceptions import GitOperationError, InvalidPatternError
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import (
    BranchSnapshot,
    CleanupProposal,
    CleanupRule,
    DeletionOutcome,
    RuleAction,
)
from git_branch_steward.presenters import resolve
from git_branch_steward.utils import KeyedDebouncer, is_excluded, safe_regex_search, validate_regex_pattern

if TYPE_CHECKING:
    from git_branch_steward.config import Config
    from git_branch_steward.presenters import Presenter
    from git_branch_steward.services.repository_context import RepositoryContext

logger = get_logger(__name__)


def evaluate_rule(snapshots: Sequence[BranchSnapshot], rule: CleanupRule) -> List[BranchSnapshot]:
    """Branches that satisfy every condition set on ``rule``.

    The current branch never matches. A rule without conditions matches every
    other branch.

    Raises:
        InvalidPatternError: If the rule's pattern fails validation
    """
    conditions = rule.conditions
    if conditions.pattern:
        validate_regex_pattern(conditions.pattern)

    matches = []
    for branch in snapshots:
        if branch.is_current_branch:
            continue
        if conditions.merged is not None and branch.is_merged != conditions.merged:
            continue
        if conditions.older_than_days and branch.days_old < conditions.older_than_days:
            continue
        if conditions.no_remote and branch.has_remote:
            continue
        if conditions.pattern and not _pattern_matches(conditions.pattern, branch.name):
            continue
        matches.append(branch)
    return matches


def _pattern_matches(pattern: str, name: str) -> bool:
    try:
        return safe_regex_search(pattern, name)
    except InvalidPatternError as e:
        # Pattern was validated up front; only oversized names land here
        logger.debug(f"Not matching {name!r}: {e.message}")
        return False


def union_matches(*match_lists: Sequence[BranchSnapshot]) -> List[BranchSnapshot]:
    """Merge match lists, keeping the first occurrence of each branch name."""
    merged: Dict[str, BranchSnapshot] = {}
    for matches in match_lists:
        for branch in matches:
            merged.setdefault(branch.name, branch)
    return list(merged.values())


class CleanupEvaluator:
    """Applies a repository's enabled cleanup rules after git events."""

    def __init__(self, config: 'Config', presenter: 'Presenter',
                 repositories: Callable[[str], 'RepositoryContext']):
        self.config = config
        self.presenter = presenter
        self.repositories = repositories
        self._debouncer = KeyedDebouncer(config.debounce_seconds, self.evaluate_and_handle)

    def on_event_triggered(self, repo_path: str, event: str = "fetch") -> None:
        """Schedule a debounced evaluation if ``event`` is configured to trigger cleanup."""
        if event not in self.config.auto_cleanup_on_events:
            logger.debug(f"Ignoring {event} event for {repo_path}")
            return
        self._debouncer.trigger(repo_path)

    async def _current_user(self, context: 'RepositoryContext') -> Optional[str]:
        try:
            return await context.backend.user_name()
        except GitOperationError as e:
            logger.debug(f"git user lookup failed: {e}")
            return None

    async def propose(self, repo_path: str,
                      snapshots: Optional[List[BranchSnapshot]] = None) -> CleanupProposal:
        """Work out which branches the enabled rules would delete."""
        context = self.repositories(repo_path)
        proposal = CleanupProposal()
        rules = context.rules.enabled()
        if not rules:
            return proposal

        if snapshots is None:
            snapshots = await context.snapshots()

        delete_matches = []
        for rule in rules:
            if rule.conditions.is_empty():
                logger.warning(f"Cleanup rule '{rule.name}' has no conditions; it matches every branch")
            try:
                matches = evaluate_rule(snapshots, rule)
            except InvalidPatternError as e:
                logger.warning(f"Skipping cleanup rule '{rule.name}': {e}")
                proposal.skipped_rules.append((rule, e.message))
                continue

            if rule.action == RuleAction.DELETE:
                delete_matches.append(matches)
            elif matches:
                proposal.notify_only.append((rule, matches))

        candidates = union_matches(*delete_matches)

        exclusions = self.config.exclusion_patterns
        if exclusions:
            candidates = [b for b in candidates if not is_excluded(b.name, exclusions)]

        if self.config.team_safe_mode and candidates:
            user = await self._current_user(context)
            if user:
                candidates = [b for b in candidates if b.author == user]
            else:
                logger.warning("Team-safe filter skipped: git user.name is not set")

        proposal.candidates = candidates
        return proposal

    async def handle(self, repo_path: str, proposal: CleanupProposal) -> Optional[DeletionOutcome]:
        """Report notify-only matches, then confirm and delete the candidates."""
        for rule, matches in proposal.notify_only:
            names = ", ".join(b.name for b in matches)
            await resolve(self.presenter.notify(
                f"Rule '{rule.name}' ({rule.action.value}) matched {len(matches)}: {names}"
            ))

        if not proposal.candidates:
            return None

        count = len(proposal.candidates)
        title = f"{count} branch{'' if count == 1 else 'es'} matched cleanup rules (uncheck to keep)"
        selected = await resolve(self.presenter.select_branches(title, proposal.candidates))
        if not selected:
            logger.debug(f"{repo_path}: cleanup cancelled")
            return None

        chosen = set(selected)
        names = [b.name for b in proposal.candidates if b.name in chosen]
        outcome = await self.repositories(repo_path).deleter.delete_branches(names, "cleanup rule")
        if outcome.attempted:
            await resolve(self.presenter.notify(f"Auto-cleanup: {outcome.summary()}"))
        return outcome

    async def evaluate_and_handle(self, repo_path: str) -> Optional[DeletionOutcome]:
        proposal = await self.propose(repo_path)
        return await self.handle(repo_path, proposal)

    def pending(self, repo_path: str) -> bool:
        return self._debouncer.pending(repo_path)

    async def drain(self) -> None:
        await self._debouncer.drain()

    def close(self) -> None:
        """Cancel pending cleanup runs; a running one completes."""
        self._debouncer.close()
