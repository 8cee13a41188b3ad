"""Configuration handling for git-branch-steward"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, List, Union

from git_branch_steward.constants import (
    DEFAULT_PROTECTED_BRANCHES,
    DEBOUNCE_SECONDS,
    ENRICHMENT_BATCH_SIZE,
    GONE_BRANCH_ACTIONS,
    CLEANUP_EVENTS,
)
from git_branch_steward.exceptions import ConfigError


@dataclass
class Config:
    """Configuration for git-branch-steward with validation."""

    # Branch policy
    stale_days: int = 30
    protected_branches: List[str] = field(
        default_factory=lambda: list(DEFAULT_PROTECTED_BRANCHES)
    )
    base_branch: Optional[str] = None  # None = detect from origin/HEAD

    # Cleanup policy
    exclusion_patterns: List[str] = field(default_factory=list)
    team_safe_mode: bool = False
    gone_branch_action: str = "prompt"  # auto-delete, notify-only, prompt
    auto_cleanup_on_events: List[str] = field(default_factory=lambda: ["fetch", "pull"])

    # Engine tuning
    debounce_seconds: float = DEBOUNCE_SECONDS
    enrichment_batch_size: int = ENRICHMENT_BATCH_SIZE
    poll_interval: float = 1.0

    # Storage
    state_dir: Optional[str] = None  # None = ~/.git-branch-steward/state

    # GitHub integration
    github_token: Optional[str] = None

    # Execution modes
    verbose: bool = False
    debug: bool = False
    assume_yes: bool = False  # Accept every prompt (non-interactive runs)

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_stale_days()
        self._validate_protected_branches()
        self._validate_base_branch()
        self._validate_exclusion_patterns()
        self._validate_gone_branch_action()
        self._validate_cleanup_events()
        self._validate_timings()
        self._validate_batch_size()

    def _validate_stale_days(self):
        """Validate stale_days is a positive integer."""
        if isinstance(self.stale_days, bool) or not isinstance(self.stale_days, int):
            raise ConfigError(f"stale_days must be an integer, got {self.stale_days!r}")
        if self.stale_days <= 0:
            raise ConfigError(f"stale_days must be positive, got {self.stale_days}")

    def _validate_protected_branches(self):
        """Validate protected_branches is a list of branch names."""
        if not isinstance(self.protected_branches, list):
            raise ConfigError("protected_branches must be a list")
        if not all(isinstance(b, str) for b in self.protected_branches):
            raise ConfigError(
                f"protected_branches entries must be strings, got {self.protected_branches!r}"
            )
        self.protected_branches = [b.strip() for b in self.protected_branches if b.strip()]

    def _validate_base_branch(self):
        """Normalize base_branch; an empty value means auto-detect."""
        if self.base_branch is not None:
            if not isinstance(self.base_branch, str):
                raise ConfigError(f"base_branch must be a string, got {self.base_branch!r}")
            self.base_branch = self.base_branch.strip() or None

    def _validate_exclusion_patterns(self):
        """Validate exclusion_patterns is a list of globs."""
        if not isinstance(self.exclusion_patterns, list):
            raise ConfigError("exclusion_patterns must be a list")
        if not all(isinstance(p, str) for p in self.exclusion_patterns):
            raise ConfigError(
                f"exclusion_patterns entries must be strings, got {self.exclusion_patterns!r}"
            )

    def _validate_gone_branch_action(self):
        """Validate gone_branch_action is one of allowed values."""
        if self.gone_branch_action not in GONE_BRANCH_ACTIONS:
            raise ConfigError(
                f"gone_branch_action must be one of {list(GONE_BRANCH_ACTIONS)}, "
                f"got '{self.gone_branch_action}'"
            )

    def _validate_cleanup_events(self):
        """Validate auto_cleanup_on_events entries."""
        if not isinstance(self.auto_cleanup_on_events, list):
            raise ConfigError("auto_cleanup_on_events must be a list")
        unknown = [e for e in self.auto_cleanup_on_events if e not in CLEANUP_EVENTS]
        if unknown:
            raise ConfigError(
                f"auto_cleanup_on_events entries must be in {list(CLEANUP_EVENTS)}, got {unknown}"
            )

    def _validate_timings(self):
        """Validate debounce and polling intervals."""
        for name in ("debounce_seconds", "poll_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number, got {value!r}")
        if self.debounce_seconds < 0:
            raise ConfigError(f"debounce_seconds cannot be negative, got {self.debounce_seconds}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")

    def _validate_batch_size(self):
        """Validate enrichment_batch_size is a positive integer."""
        size = self.enrichment_batch_size
        if isinstance(size, bool) or not isinstance(size, int):
            raise ConfigError(f"enrichment_batch_size must be an integer, got {size!r}")
        if size <= 0:
            raise ConfigError(f"enrichment_batch_size must be positive, got {size}")

    @property
    def state_path(self) -> Path:
        """Directory holding per-repository state files."""
        if self.state_dir:
            return Path(self.state_dir).expanduser()
        return Path.home() / ".git-branch-steward" / "state"

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_json_file(cls, path: Union[str, Path], **overrides) -> "Config":
        """Load a Config from a JSON file.

        Args:
            path: Path to a JSON object with config keys
            **overrides: Values that take precedence over the file (e.g. CLI flags)

        Raises:
            ConfigError: If the file cannot be read or is not a JSON object
        """
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not load config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
