"""Utility functions for git-branch-steward.

This package provides utility modules:
- patterns: Safe regex checks for rule patterns and glob exclusion matching
- debounce: Per-key asyncio debouncing used by the event-driven components
"""

from .patterns import (
    validate_regex_pattern,
    safe_regex_search,
    glob_to_regex,
    is_excluded,
)
from .debounce import KeyedDebouncer

__all__ = [
    # Patterns
    "validate_regex_pattern",
    "safe_regex_search",
    "glob_to_regex",
    "is_excluded",
    # Debounce
    "KeyedDebouncer",
]
