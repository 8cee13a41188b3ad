"""Cleanup rule storage"""
from typing import List, Optional, TYPE_CHECKING

from git_branch_steward.constants import STATE_KEY_RULES
from git_branch_steward.exceptions import ConfigError, RuleNotFoundError
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import CleanupRule, RuleAction, RuleConditions
from git_branch_steward.utils import validate_regex_pattern

if TYPE_CHECKING:
    from git_branch_steward.services.state_store import StateStore

logger = get_logger(__name__)


class RuleService:
    """CRUD over the cleanup rules of one repository."""

    def __init__(self, repo_path: str, store: 'StateStore'):
        self.repo_path = repo_path
        self.store = store

    def list(self) -> List[CleanupRule]:
        """All stored rules; malformed entries are skipped with a warning."""
        rules = []
        for item in self.store.get(self.repo_path, STATE_KEY_RULES, []) or []:
            try:
                rules.append(CleanupRule.from_dict(item))
            except (ConfigError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring invalid cleanup rule {item!r}: {e}")
        return rules

    def enabled(self) -> List[CleanupRule]:
        return [rule for rule in self.list() if rule.enabled]

    def get(self, rule_id: str) -> CleanupRule:
        for rule in self.list():
            if rule.id == rule_id:
                return rule
        raise RuleNotFoundError(rule_id)

    def _save(self, rules: List[CleanupRule]) -> None:
        self.store.set(self.repo_path, STATE_KEY_RULES, [rule.to_dict() for rule in rules])

    def add(self, name: str, conditions: RuleConditions,
            action: RuleAction = RuleAction.DELETE, enabled: bool = True,
            rule_id: Optional[str] = None) -> CleanupRule:
        """Create and persist a rule.

        Raises:
            ConfigError: If the name is empty
            InvalidPatternError: If the pattern fails validation
        """
        if not name or not name.strip():
            raise ConfigError("Cleanup rule name cannot be empty")
        if conditions.pattern:
            validate_regex_pattern(conditions.pattern)
        if conditions.is_empty():
            logger.warning(
                f"Cleanup rule '{name}' has no conditions and matches every non-current branch"
            )

        kwargs = {"id": rule_id} if rule_id else {}
        rule = CleanupRule(name=name.strip(), conditions=conditions, action=action,
                           enabled=enabled, **kwargs)
        rules = self.list()
        if any(r.id == rule.id for r in rules):
            raise ConfigError(f"Cleanup rule id '{rule.id}' already exists")
        rules.append(rule)
        self._save(rules)
        logger.info(f"Added cleanup rule '{rule.name}' ({rule.id})")
        return rule

    def set_enabled(self, rule_id: str, enabled: bool) -> CleanupRule:
        rules = self.list()
        for i, rule in enumerate(rules):
            if rule.id == rule_id:
                rules[i] = rule.with_enabled(enabled)
                self._save(rules)
                return rules[i]
        raise RuleNotFoundError(rule_id)

    def toggle(self, rule_id: str) -> CleanupRule:
        """Flip a rule's enabled flag."""
        return self.set_enabled(rule_id, not self.get(rule_id).enabled)

    def remove(self, rule_id: str) -> None:
        rules = self.list()
        kept = [rule for rule in rules if rule.id != rule_id]
        if len(kept) == len(rules):
            raise RuleNotFoundError(rule_id)
        self._save(kept)
        logger.info(f"Removed cleanup rule {rule_id}")
