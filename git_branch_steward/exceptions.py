"""Custom exceptions for git-branch-steward"""

from typing import Optional


class GitBranchStewardError(Exception):
    """Base exception for all git-branch-steward errors."""
    pass


class ConfigError(GitBranchStewardError, ValueError):
    """Exception raised for invalid configuration values."""
    pass


class GitOperationError(GitBranchStewardError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class BackendUnavailableError(GitOperationError):
    """Exception raised when the repository cannot be queried at all."""
    pass


class ObjectMissingError(GitOperationError):
    """Exception raised when a recorded commit is no longer reachable."""

    def __init__(self, branch: str, commit_hash: str):
        self.commit_hash = commit_hash
        super().__init__(
            "restore_branch", branch, f"commit {commit_hash[:12]} no longer exists"
        )


class NameCollisionError(GitOperationError):
    """Exception raised when restoring onto a branch name that already exists."""

    def __init__(self, branch: str):
        super().__init__("restore_branch", branch, "a branch with that name already exists")


class PartialEnrichmentError(GitBranchStewardError):
    """Exception raised when one branch's metadata cannot be collected."""

    def __init__(self, branch: str, message: Optional[str] = None):
        self.branch = branch
        error_msg = f"Could not collect metadata for branch '{branch}'"
        if message:
            error_msg += f": {message}"
        super().__init__(error_msg)


class InvalidPatternError(GitBranchStewardError):
    """Exception raised for regex patterns that fail validation."""

    def __init__(self, pattern: str, message: str):
        self.pattern = pattern
        self.message = message
        super().__init__(f"Invalid pattern '{pattern}': {message}")


class RuleNotFoundError(GitBranchStewardError):
    """Exception raised when a cleanup rule id does not exist."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Cleanup rule '{rule_id}' not found")


class RecoveryEntryNotFoundError(GitBranchStewardError):
    """Exception raised when no recovery entry matches a branch/commit pair."""

    def __init__(self, branch: str, commit_hash: Optional[str] = None):
        self.branch = branch
        self.commit_hash = commit_hash
        target = f"'{branch}'" + (f" at {commit_hash[:12]}" if commit_hash else "")
        super().__init__(f"No recovery entry for {target}")


class StateStoreError(GitBranchStewardError):
    """Exception raised when persisted state cannot be written."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"Could not write state file {path}: {message}")
