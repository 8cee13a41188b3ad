"""Shared constants for git-branch-steward."""

from dataclasses import dataclass
from typing import List


# Policy defaults
DEFAULT_PROTECTED_BRANCHES = ("main", "master", "develop", "dev", "staging", "production")
DEBOUNCE_SECONDS = 0.5
ENRICHMENT_BATCH_SIZE = 10
MAX_RECOVERY_ENTRIES = 50

GONE_BRANCH_ACTIONS = ("auto-delete", "notify-only", "prompt")
CLEANUP_EVENTS = ("fetch", "pull", "merge")


# Health scoring
HEALTH_START_SCORE = 100
HEALTH_MERGED_PENALTY = 40
HEALTH_AGE_PENALTIES = ((2.0, 30), (1.0, 20), (0.5, 10))  # (multiple of stale_days, penalty)
HEALTH_GONE_PENALTY = 20
HEALTH_BEHIND_PENALTIES = ((50, 10), (20, 5))  # (behind greater than, penalty)
HEALTH_STATUS_THRESHOLDS = ((80, "healthy"), (60, "warning"), (40, "critical"))
HEALTH_REASON_AGE_DAYS = 60
HEALTH_REASON_BEHIND = 20


# Pattern safety limits
MAX_PATTERN_LENGTH = 200
MAX_PATTERN_INPUT_LENGTH = 1000


# State store keys
STATE_KEY_RULES = "cleanup_rules"
STATE_KEY_RECOVERY = "recovery_log"


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("health", "Health", 8),
    ColumnDefinition("status", "Status", 10),
    ColumnDefinition("age", "Age", 6),
    ColumnDefinition("sync", "Ahead/Behind", 12),
    ColumnDefinition("remote", "Remote", 8),
    ColumnDefinition("author", "Author", 16),
    ColumnDefinition("pr", "PR", 10),
    ColumnDefinition("reason", "Reason", 30),
]


# Symbol constants
SYMBOL_HAS_REMOTE = "✓"
SYMBOL_NO_REMOTE = "✗"
SYMBOL_REMOTE_GONE = "gone"
SYMBOL_CURRENT_BRANCH = " *"


# CLI colors (Rich color names) per health status
HEALTH_COLORS = {
    "healthy": "green",
    "warning": "yellow",
    "critical": "dark_orange",
    "danger": "red",
}
