"""
Custom Rules Engine
====================

Allows users to define custom file organization rules in the config file.
Rules are evaluated before the organize mode: the first enabled rule whose
glob matches the file name, by descending priority, decides the
destination folder.

Example (``~/.neat/config.yaml``)::

    rules:
      - name: Invoices
        pattern: "*invoice*.pdf"
        destination: "Documents/Invoices/{year}"
        priority: 10
"""

from dataclasses import dataclass, asdict
from fnmatch import fnmatchcase
from typing import Any, Dict, Iterable, List, Optional

from neat.utils.exceptions import ConfigurationError
from neat.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CustomRule:
    """A custom file organization rule.

    Attributes:
        name: Human-readable rule name.
        pattern: Glob matched against the file name, e.g. ``*invoice*.pdf``.
        destination: Folder template, e.g. ``Documents/Invoices/{year}``.
        priority: Higher = evaluated first.
        enabled: Whether rule is active.
    """
    name: str
    pattern: str
    destination: str
    priority: int = 0
    enabled: bool = True

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomRule":
        """Create from dictionary.

        Raises:
            ConfigurationError: If a required key is missing or mistyped.
        """
        missing = [key for key in ("name", "pattern", "destination") if not data.get(key)]
        if missing:
            raise ConfigurationError(
                f"Rule is missing required keys: {', '.join(missing)}",
                config_key="rules",
                details={"rule": dict(data)}
            )
        try:
            priority = int(data.get("priority", 0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Rule '{data['name']}' has a non-integer priority",
                config_key="rules.priority",
                expected_type="int",
                cause=e
            )
        return cls(
            name=str(data["name"]),
            pattern=str(data["pattern"]),
            destination=str(data["destination"]),
            priority=priority,
            enabled=bool(data.get("enabled", True)),
        )

    def matches(self, filename: str) -> bool:
        """Check if a file name matches this rule."""
        if not self.enabled:
            return False
        return fnmatchcase(filename, self.pattern)


class RulesEngine:
    """Engine for evaluating custom file organization rules."""

    def __init__(self, rules: Optional[Iterable[CustomRule]] = None):
        self._rules: List[CustomRule] = list(rules or [])

    @classmethod
    def from_config(cls, rules: Iterable[Dict[str, Any]]) -> "RulesEngine":
        """Build an engine from the ``rules`` list of the config file."""
        engine = cls(CustomRule.from_dict(rule) for rule in rules)
        logger.debug(f"Loaded {len(engine._rules)} custom rules")
        return engine

    def get_sorted_rules(self) -> List[CustomRule]:
        """Rules by descending priority; equal priorities keep file order."""
        return sorted(self._rules, key=lambda r: r.priority, reverse=True)

    def find_matching_rule(self, filename: str) -> Optional[CustomRule]:
        """Find the rule that decides where ``filename`` goes.

        Args:
            filename: Base name of the file.

        Returns:
            The matching rule, or None to fall back to the organize mode.
        """
        for rule in self.get_sorted_rules():
            if rule.matches(filename):
                logger.debug(f"Rule matched: '{rule.name}' for {filename}")
                return rule
        return None

    def add_rule(self, rule: CustomRule) -> CustomRule:
        self._rules.append(rule)
        logger.info(f"Added rule: {rule.name}")
        return rule

    def remove_rule(self, name: str) -> bool:
        """Remove a rule by name.

        Returns:
            True if removed.
        """
        for i, rule in enumerate(self._rules):
            if rule.name == name:
                self._rules.pop(i)
                logger.info(f"Removed rule: {name}")
                return True
        return False

    def get_rules(self) -> List[CustomRule]:
        """Get all rules in declaration order."""
        return self._rules.copy()

    def __len__(self) -> int:
        return len(self._rules)
