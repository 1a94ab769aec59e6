"""System file filtering logic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple


@dataclass
class FilterRule:
    pattern: str
    rule_type: str
    reason: str


class SystemFileFilter:
    """Decide which files in the watched directory must never be moved."""

    DEFAULT_RULES: Tuple[FilterRule, ...] = (
        FilterRule(".DS_Store", "equals", "macOS folder metadata"),
        FilterRule("Thumbs.db", "equals", "Windows thumbnail cache"),
        FilterRule("desktop.ini", "equals", "Windows folder settings"),
        FilterRule("~$", "startsWith", "Office lock file"),
        FilterRule(".", "startsWith", "hidden file"),
    )

    def __init__(self, extra_rules: Iterable[FilterRule] = ()) -> None:
        self.rules: List[FilterRule] = list(self.DEFAULT_RULES)
        self.rules.extend(extra_rules)

    def should_skip(self, file_name: str) -> bool:
        """Return True if *file_name* is a system file."""

        return self.reason(file_name) is not None

    def reason(self, file_name: str) -> str | None:
        for rule in self.rules:
            if self._matches(rule, file_name):
                return rule.reason
        return None

    def add_rule(self, rule: FilterRule) -> None:
        self.rules.append(rule)

    @staticmethod
    def _matches(rule: FilterRule, file_name: str) -> bool:
        if rule.rule_type == "startsWith":
            return file_name.startswith(rule.pattern)
        if rule.rule_type == "equals":
            return file_name == rule.pattern
        if rule.rule_type == "contains":
            return rule.pattern in file_name
        return False
