"""Version information for git-branch-steward."""

__version__ = "0.3.0"
