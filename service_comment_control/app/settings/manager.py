"""
Rule settings management: reading the effective rules and saving changes.
"""

from typing import Any, Callable, Dict, List, Optional

from shared.logging import get_logger
from ..rules.defaults import DefaultRuleProvider, RULE_LISTS, RuleDocument
from ..rules.loader import load_rule_set
from ..rules.models import RuleSet
from .store import SettingsStore

UpdateFilter = Callable[[RuleDocument], RuleDocument]


class RuleSettingsManager:
    """Combines the settings store with the default rule provider."""

    def __init__(self, store: SettingsStore, defaults: Optional[DefaultRuleProvider] = None):
        self.store = store
        self.defaults = defaults or DefaultRuleProvider()
        self.logger = get_logger("comment_control.settings")
        self._update_filters: List[UpdateFilter] = []

    def register_update_filter(self, update_filter: UpdateFilter) -> None:
        """Add a callable applied to the document just before it is saved."""
        self._update_filters.append(update_filter)

    async def get_document(self) -> RuleDocument:
        """Effective rule document: persisted lists over the defaults."""
        return self.defaults.merge(await self.store.get())

    async def get_rule_set(self) -> RuleSet:
        """Effective, validated rule set for one evaluation."""
        return load_rule_set(await self.get_document())

    async def is_customized(self) -> bool:
        return await self.store.get() is not None

    async def update(self, changes: Dict[str, Any]) -> RuleDocument:
        """Replace the rule lists present in ``changes`` and persist.

        Lists missing from ``changes`` keep their current effective value.
        The whole document is validated before anything is written, so a
        malformed entry leaves the stored settings untouched.
        """
        document = await self.get_document()
        for key in RULE_LISTS:
            if changes.get(key) is not None:
                document[key] = list(changes[key])

        for update_filter in self._update_filters:
            document = update_filter(document)

        rules = load_rule_set(document)
        await self.store.set(document)

        self.logger.info(
            "Rule settings updated",
            role_rules=len(rules.role_rules),
            post_rules=len(rules.post_rules)
        )
        return document

    async def reset(self) -> bool:
        """Drop persisted settings so the defaults apply again."""
        removed = await self.store.delete()
        if removed:
            self.logger.info("Rule settings reset to defaults")
        return removed
