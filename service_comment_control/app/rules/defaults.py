"""
Built-in rules used when nothing has been configured.
"""

import copy
from typing import Any, Callable, Dict, List, Mapping, Optional

from shared.logging import get_logger
from .loader import load_rule_set
from .models import RuleSet

RuleDocument = Dict[str, Any]
RuleFilter = Callable[[RuleDocument], RuleDocument]

RULE_LISTS = ("post_rules", "role_rules")

DEFAULT_RULES: RuleDocument = {
    "post_rules": [
        {
            "post_type": "post",
            "type": "age",
            "time": 6,
            "unit": "month",
        },
    ],
    "role_rules": [
        {
            "role": "administrator",
            "type": "always",
            "post_type": "post",
        },
        {
            "role": "administrator",
            "type": "always",
            "post_type": "page",
        },
    ],
}


class DefaultRuleProvider:
    """Supplies the default rule document and merges persisted overrides.

    Filters registered with ``register_filter`` run in registration order
    each time the defaults are read, so add-ons can add, drop or rewrite
    default rules before any persisted settings are applied.
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None):
        self.logger = get_logger("comment_control.defaults")
        self._defaults = copy.deepcopy(dict(defaults if defaults is not None else DEFAULT_RULES))
        self._filters: List[RuleFilter] = []

    def register_filter(self, rule_filter: RuleFilter) -> None:
        """Add a callable that receives and returns the default document."""
        self._filters.append(rule_filter)
        self.logger.info(
            "Default rule filter registered",
            filter=getattr(rule_filter, "__name__", repr(rule_filter)),
            total_filters=len(self._filters)
        )

    def unregister_filter(self, rule_filter: RuleFilter) -> bool:
        """Remove a previously registered filter."""
        if rule_filter in self._filters:
            self._filters.remove(rule_filter)
            return True
        return False

    def get_defaults(self) -> RuleDocument:
        """Return a fresh copy of the defaults with all filters applied."""
        document = copy.deepcopy(self._defaults)
        for rule_filter in self._filters:
            document = rule_filter(document)
        return document

    def merge(self, persisted: Optional[Mapping[str, Any]]) -> RuleDocument:
        """Overlay persisted settings on the defaults.

        A rule list present in ``persisted`` replaces the default list
        wholesale, even when empty. Other persisted keys are carried along.
        """
        document = self.get_defaults()
        if persisted:
            for key, value in persisted.items():
                document[key] = copy.deepcopy(value)
        return document

    def rule_set(self, persisted: Optional[Mapping[str, Any]] = None) -> RuleSet:
        """Build the effective, validated rule set."""
        return load_rule_set(self.merge(persisted))
