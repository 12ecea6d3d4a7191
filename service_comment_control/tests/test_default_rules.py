"""
Unit tests for the default rule provider.
"""

import pytest

from shared.errors import ConfigurationError
from service_comment_control.app.rules.defaults import DEFAULT_RULES, DefaultRuleProvider
from service_comment_control.app.rules.models import AgeUnit, PostRuleKind, Verdict


class TestDefaultRuleProvider:
    """Test cases for DefaultRuleProvider."""

    @pytest.fixture
    def provider(self):
        """Create DefaultRuleProvider instance."""
        return DefaultRuleProvider()

    def test_builtin_rules(self, provider):
        """Test the built-in rule set contents."""
        rules = provider.rule_set()

        assert len(rules.post_rules) == 1
        age_rule = rules.post_rules[0]
        assert (age_rule.post_type, age_rule.kind, age_rule.amount, age_rule.unit) == (
            "post", PostRuleKind.AGE, 6, AgeUnit.MONTH
        )

        assert [(r.role, r.post_type, r.verdict) for r in rules.role_rules] == [
            ("administrator", "post", Verdict.ALWAYS_OPEN),
            ("administrator", "page", Verdict.ALWAYS_OPEN),
        ]

    def test_get_defaults_returns_copy(self, provider):
        """Test callers cannot mutate the provider's defaults."""
        document = provider.get_defaults()
        document["role_rules"].clear()

        assert len(provider.get_defaults()["role_rules"]) == 2
        assert len(DEFAULT_RULES["role_rules"]) == 2

    def test_filters_run_in_order(self, provider):
        """Test registered filters augment the defaults in order."""
        def add_page_limit(document):
            document["post_rules"].append({"post_type": "page", "type": "limit", "limit": 50})
            return document

        def tighten_limits(document):
            for rule in document["post_rules"]:
                if rule["type"] == "limit":
                    rule["limit"] = 10
            return document

        provider.register_filter(add_page_limit)
        provider.register_filter(tighten_limits)

        rules = provider.rule_set()

        assert rules.post_rules[1].post_type == "page"
        assert rules.post_rules[1].max_comments == 10

    def test_unregister_filter(self, provider):
        def drop_roles(document):
            document["role_rules"] = []
            return document

        provider.register_filter(drop_roles)
        assert provider.rule_set().role_rules == ()

        assert provider.unregister_filter(drop_roles) is True
        assert provider.unregister_filter(drop_roles) is False
        assert len(provider.rule_set().role_rules) == 2

    def test_merge_without_persisted_settings(self, provider):
        assert provider.merge(None) == provider.get_defaults()
        assert provider.merge({}) == provider.get_defaults()

    def test_merge_replaces_lists_independently(self, provider):
        """Test a persisted list replaces its default list wholesale."""
        persisted = {"role_rules": [{"role": "loggedout", "type": "never", "post_type": "post"}]}

        merged = provider.merge(persisted)

        assert merged["role_rules"] == persisted["role_rules"]
        assert merged["post_rules"] == DEFAULT_RULES["post_rules"]

    def test_merge_empty_list_removes_defaults(self, provider):
        """Test an empty persisted list still replaces the defaults."""
        rules = provider.rule_set({"post_rules": []})

        assert rules.post_rules == ()
        assert len(rules.role_rules) == 2

    def test_merge_applies_filters_before_overrides(self, provider):
        def add_editor(document):
            document["role_rules"].append({"role": "editor", "type": "always", "post_type": "post"})
            document["post_rules"].append({"post_type": "page", "type": "limit", "limit": 5})
            return document

        provider.register_filter(add_editor)
        merged = provider.merge({"role_rules": []})

        assert merged["role_rules"] == []
        assert len(merged["post_rules"]) == 2

    def test_merge_carries_extra_keys(self, provider):
        merged = provider.merge({"addon_option": {"enabled": True}})

        assert merged["addon_option"] == {"enabled": True}
        assert provider.rule_set({"addon_option": 1}).role_rules

    def test_invalid_persisted_rule(self, provider):
        with pytest.raises(ConfigurationError):
            provider.rule_set({"post_rules": [{"post_type": "post", "type": "age", "time": 3, "unit": "decade"}]})

    def test_custom_defaults(self):
        provider = DefaultRuleProvider({"role_rules": [], "post_rules": []})

        assert provider.rule_set().is_empty()
