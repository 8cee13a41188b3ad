"""Cleanup rule model"""
import uuid
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Optional

from git_branch_steward.exceptions import ConfigError


class RuleAction(Enum):
    """What to do with branches a rule matches."""
    DELETE = "delete"
    ARCHIVE = "archive"
    NOTIFY = "notify"


@dataclass(frozen=True)
class RuleConditions:
    """Conditions of a rule; a branch must satisfy every one that is set."""
    merged: Optional[bool] = None
    older_than_days: Optional[int] = None
    pattern: Optional[str] = None
    no_remote: Optional[bool] = None

    def __post_init__(self):
        if self.older_than_days is not None:
            if isinstance(self.older_than_days, bool) or not isinstance(self.older_than_days, int):
                raise ConfigError(
                    f"olderThanDays must be an integer, got {self.older_than_days!r}"
                )
            if self.older_than_days <= 0:
                raise ConfigError(f"olderThanDays must be positive, got {self.older_than_days}")

    def is_empty(self) -> bool:
        """True when no condition is set, i.e. the rule matches everything."""
        return (
            self.merged is None
            and not self.older_than_days
            and not self.pattern
            and not self.no_remote
        )

    def describe(self) -> str:
        parts = []
        if self.merged is not None:
            parts.append("merged" if self.merged else "unmerged")
        if self.older_than_days:
            parts.append(f">= {self.older_than_days}d old")
        if self.pattern:
            parts.append(f"name ~ /{self.pattern}/")
        if self.no_remote:
            parts.append("no remote")
        return " and ".join(parts) if parts else "any branch"

    def to_dict(self) -> dict:
        data = {}
        if self.merged is not None:
            data["merged"] = self.merged
        if self.older_than_days is not None:
            data["olderThanDays"] = self.older_than_days
        if self.pattern is not None:
            data["pattern"] = self.pattern
        if self.no_remote is not None:
            data["noRemote"] = self.no_remote
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RuleConditions":
        return cls(
            merged=data.get("merged"),
            older_than_days=data.get("olderThanDays"),
            pattern=data.get("pattern") or None,
            no_remote=data.get("noRemote"),
        )


@dataclass(frozen=True)
class CleanupRule:
    """A user-authored cleanup rule, persisted per repository."""
    name: str
    conditions: RuleConditions = field(default_factory=RuleConditions)
    action: RuleAction = RuleAction.DELETE
    enabled: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def with_enabled(self, enabled: bool) -> "CleanupRule":
        return replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "conditions": self.conditions.to_dict(),
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CleanupRule":
        """Build a rule from its stored form.

        Raises:
            ConfigError: If the action or conditions are invalid
        """
        try:
            action = RuleAction(data.get("action", RuleAction.DELETE.value))
        except ValueError:
            raise ConfigError(f"Unknown cleanup rule action '{data.get('action')}'")

        if "id" not in data or "name" not in data:
            raise ConfigError("Cleanup rule requires 'id' and 'name'")

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            enabled=bool(data.get("enabled", True)),
            conditions=RuleConditions.from_dict(data.get("conditions") or {}),
            action=action,
        )
