"""Pattern utilities: user regex validation and glob exclusion matching."""

import re
from functools import lru_cache
from typing import Iterable, Pattern

from git_branch_steward.constants import MAX_PATTERN_LENGTH, MAX_PATTERN_INPUT_LENGTH
from git_branch_steward.exceptions import InvalidPatternError


# Nested or repeated quantifiers that backtrack catastrophically
_DANGEROUS_PATTERNS = [
    re.compile(r"\([^)]*[+*]\)[+*{]"),  # (x+)+, (x+)*, (x*)+, (x*)*
    re.compile(r"\([^|]*\|[^)]*\)[+*{]"),  # (a|b)+, (a|b)*
    re.compile(r"\.\*\.\*"),  # .*.*
]


@lru_cache(maxsize=256)
def validate_regex_pattern(pattern: str) -> Pattern:
    """Validate a user-supplied regex and return it compiled.

    Args:
        pattern: Regex source from a cleanup rule

    Returns:
        Compiled pattern

    Raises:
        InvalidPatternError: If the pattern is too long, looks catastrophically
            backtracking, or does not compile
    """
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise InvalidPatternError(
            pattern, f"pattern too long (max {MAX_PATTERN_LENGTH} characters)"
        )

    for dangerous in _DANGEROUS_PATTERNS:
        if dangerous.search(pattern):
            raise InvalidPatternError(
                pattern, "pattern contains quantifiers that may cause performance issues"
            )

    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(pattern, f"invalid regex: {e}") from e


def safe_regex_search(pattern: str, text: str) -> bool:
    """Search ``text`` with a validated pattern.

    Raises:
        InvalidPatternError: If the pattern fails validation or the input is too long
    """
    compiled = validate_regex_pattern(pattern)
    if len(text) > MAX_PATTERN_INPUT_LENGTH:
        raise InvalidPatternError(
            pattern, f"input too long (max {MAX_PATTERN_INPUT_LENGTH} characters)"
        )
    return compiled.search(text) is not None


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> Pattern:
    """Convert a branch glob into an anchored regex.

    ``*`` matches any run of characters except ``/`` and ``?`` matches exactly
    one such character, so ``feature/*`` covers ``feature/x`` but not
    ``feature/x/y``. Everything else is literal.
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts))


def is_excluded(branch_name: str, exclusion_patterns: Iterable[str]) -> bool:
    """Return True if branch_name matches any exclusion glob."""
    return any(glob_to_regex(p).fullmatch(branch_name) for p in exclusion_patterns)
