"""Branch snapshot model and related enums"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional


class HealthStatus(Enum):
    """Health tier of a branch, derived from its score."""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    DANGER = "danger"


@dataclass(frozen=True)
class PRStatus:
    """Pull request attached to a branch by a status provider."""
    number: int
    state: str  # open, closed, merged, draft
    title: str
    url: str


@dataclass(frozen=True)
class BranchSnapshot:
    """State of one local branch during a single reconciliation pass.

    Snapshots are rebuilt on every pass and never mutated; use
    ``dataclasses.replace`` to derive an annotated copy.
    """
    name: str
    is_merged: bool
    is_current_branch: bool
    days_old: int
    ahead: int = 0
    behind: int = 0
    author: Optional[str] = None
    has_remote: bool = False
    remote_gone: bool = False
    tracking_ref: Optional[str] = None
    linked_issue: Optional[str] = None
    health_score: int = 100
    health_status: HealthStatus = HealthStatus.HEALTHY
    health_reason: str = "active"
    pr_status: Optional[PRStatus] = None
    last_commit_timestamp: int = 0  # unix seconds, 0 = unknown
