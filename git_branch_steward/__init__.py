"""
git-branch-steward - Branch lifecycle reconciliation for Git repositories
"""

from .__version__ import __version__
from .core import ReconciliationEngine
from .cli import main

__all__ = ["ReconciliationEngine", "main", "__version__"]
