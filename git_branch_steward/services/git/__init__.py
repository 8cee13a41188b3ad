"""Git backend for git-branch-steward.

- operations: async GitPython backend (branch queries, delete/restore)
"""

from .operations import GitOperations, RefMetadata

__all__ = ["GitOperations", "RefMetadata"]
