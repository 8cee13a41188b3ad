"""Branch health classification.

Pure functions: a branch's score, status and reason depend only on its
snapshot fields and the stale threshold.
"""

import re
from dataclasses import replace
from typing import Optional, Tuple

from git_branch_steward.constants import (
    HEALTH_START_SCORE,
    HEALTH_MERGED_PENALTY,
    HEALTH_AGE_PENALTIES,
    HEALTH_GONE_PENALTY,
    HEALTH_BEHIND_PENALTIES,
    HEALTH_STATUS_THRESHOLDS,
    HEALTH_REASON_AGE_DAYS,
    HEALTH_REASON_BEHIND,
)
from git_branch_steward.models import BranchSnapshot, HealthStatus

# Issue references as a whole path segment: 123, #123, ABC-123, GH-12
_ISSUE_PATTERNS = [
    re.compile(r"(?:^|/)(#?\d+)(?:[-_]|$)"),
    re.compile(r"(?:^|/)([A-Z]+-\d+)(?:[-_]|$)", re.IGNORECASE),
    re.compile(r"(?:^|/)(GH-\d+)(?:[-_]|$)", re.IGNORECASE),
]


def health_score(is_merged: bool, days_old: int, remote_gone: bool, behind: int,
                 stale_days: int) -> int:
    """Score a branch from 0 (delete me) to 100 (active)."""
    score = HEALTH_START_SCORE

    if is_merged:
        score -= HEALTH_MERGED_PENALTY

    # Only the highest age tier applies
    for multiple, penalty in HEALTH_AGE_PENALTIES:
        if days_old > stale_days * multiple:
            score -= penalty
            break

    if remote_gone:
        score -= HEALTH_GONE_PENALTY

    for threshold, penalty in HEALTH_BEHIND_PENALTIES:
        if behind > threshold:
            score -= penalty
            break

    return max(0, min(100, score))


def health_status_for(score: int) -> HealthStatus:
    for threshold, status in HEALTH_STATUS_THRESHOLDS:
        if score >= threshold:
            return HealthStatus(status)
    return HealthStatus.DANGER


def health_reason(is_merged: bool, days_old: int, remote_gone: bool, behind: int) -> str:
    """Human-readable summary of what drags a branch's health down.

    The age and behind thresholds here are fixed and independent of the stale
    threshold, so a branch can lose points without a matching reason.
    """
    reasons = []
    if is_merged:
        reasons.append("merged")
    if days_old > HEALTH_REASON_AGE_DAYS:
        reasons.append(f"{days_old}d old")
    if remote_gone:
        reasons.append("remote deleted")
    if behind > HEALTH_REASON_BEHIND:
        reasons.append(f"{behind} behind")
    return ", ".join(reasons) if reasons else "active"


def score_branch(snapshot: BranchSnapshot, stale_days: int) -> Tuple[int, HealthStatus, str]:
    """Return ``(score, status, reason)`` for a snapshot."""
    fields = (snapshot.is_merged, snapshot.days_old, snapshot.remote_gone, snapshot.behind)
    score = health_score(*fields, stale_days=stale_days)
    return score, health_status_for(score), health_reason(*fields)


def classify(snapshot: BranchSnapshot, stale_days: int) -> BranchSnapshot:
    """Return a copy of the snapshot with its health fields filled in."""
    score, status, reason = score_branch(snapshot, stale_days)
    return replace(snapshot, health_score=score, health_status=status, health_reason=reason)


def extract_issue_from_branch(branch_name: str) -> Optional[str]:
    """Find an issue reference in a branch name, e.g. ``feature/ABC-123-login``."""
    for pattern in _ISSUE_PATTERNS:
        match = pattern.search(branch_name)
        if match:
            return match.group(1)
    return None
