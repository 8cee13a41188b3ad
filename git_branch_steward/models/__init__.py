"""Data models for git-branch-steward."""

from .branch import BranchSnapshot, HealthStatus, PRStatus
from .rule import CleanupRule, RuleAction, RuleConditions
from .recovery import RecoveryEntry
from .outcome import CleanupProposal, DeletionOutcome, GoneAction, ReconciliationResult

__all__ = [
    "BranchSnapshot",
    "HealthStatus",
    "PRStatus",
    "CleanupRule",
    "RuleAction",
    "RuleConditions",
    "RecoveryEntry",
    "CleanupProposal",
    "DeletionOutcome",
    "GoneAction",
    "ReconciliationResult",
]
