"""Proposals and outcomes exchanged with the presentation layer"""
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from git_branch_steward.models.branch import BranchSnapshot
from git_branch_steward.models.rule import CleanupRule


class GoneAction(Enum):
    """User response to a newly-gone branch prompt."""
    CLEAN_ALL = "clean-all"
    PREVIEW = "preview"
    DISMISS = "dismiss"


@dataclass
class DeletionOutcome:
    """Result of a batch delete."""
    deleted: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (branch, reason)

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.failed)

    def summary(self) -> str:
        """Outcome phrased for users, e.g. "deleted 4, failed 1: branch-x"."""
        text = f"deleted {len(self.deleted)}"
        if self.failed:
            names = ", ".join(name for name, _ in self.failed)
            text += f", failed {len(self.failed)}: {names}"
        return text


@dataclass
class CleanupProposal:
    """Branches the enabled rules would delete, plus report-only matches."""
    candidates: List[BranchSnapshot] = field(default_factory=list)
    notify_only: List[Tuple[CleanupRule, List[BranchSnapshot]]] = field(default_factory=list)
    skipped_rules: List[Tuple[CleanupRule, str]] = field(default_factory=list)  # (rule, why)

    @property
    def candidate_names(self) -> List[str]:
        return [b.name for b in self.candidates]

    def is_empty(self) -> bool:
        return not self.candidates and not self.notify_only


@dataclass
class ReconciliationResult:
    """Everything one reconciliation pass saw and did."""
    snapshots: List[BranchSnapshot] = field(default_factory=list)
    newly_gone: List[BranchSnapshot] = field(default_factory=list)
    gone_outcome: Optional[DeletionOutcome] = None
    proposal: CleanupProposal = field(default_factory=CleanupProposal)
    cleanup_outcome: Optional[DeletionOutcome] = None

    @property
    def deleted(self) -> List[str]:
        names = []
        for outcome in (self.gone_outcome, self.cleanup_outcome):
            if outcome is not None:
                names.extend(outcome.deleted)
        return names
