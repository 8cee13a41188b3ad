"""Services for git-branch-steward.

- git: async GitPython backend
- snapshot_builder / health: branch snapshots and their health scores
- gone_detector / cleanup_evaluator: the event-driven reconciliation stages
- recovery_log / branch_deleter: log-then-delete and restore
- state_store / rule_service: per-repository persistence
- github_service: optional PR status lookups
- watcher: polling event source
"""

from .branch_deleter import BranchDeleter
from .cleanup_evaluator import CleanupEvaluator, evaluate_rule, union_matches
from .gone_detector import GoneDetector
from .recovery_log import RecoveryLog
from .repository_context import RepositoryContext
from .rule_service import RuleService
from .snapshot_builder import SnapshotBuilder
from .state_store import StateStore
from .watcher import RepositoryWatcher

__all__ = [
    "BranchDeleter",
    "CleanupEvaluator",
    "evaluate_rule",
    "union_matches",
    "GoneDetector",
    "RecoveryLog",
    "RepositoryContext",
    "RuleService",
    "SnapshotBuilder",
    "StateStore",
    "RepositoryWatcher",
]
