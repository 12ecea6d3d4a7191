"""
Tests for the rule document validation script.
"""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "validate_rules.py"


@pytest.fixture
def validate_rules():
    """Load the script as a module."""
    spec = importlib.util.spec_from_file_location("validate_rules", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_valid_yaml_document(validate_rules, tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "role_rules:\n"
        "  - {role: administrator, type: always, post_type: post}\n"
        "post_rules:\n"
        "  - {post_type: post, type: age, time: 6, unit: month}\n"
    )

    assert validate_rules.validate_rules_file(path) == []
    assert validate_rules.main([str(path)]) == 0


def test_valid_json_document(validate_rules, tmp_path):
    path = tmp_path / "rules.json"
    path.write_text('{"post_rules": [{"post_type": "page", "type": "limit", "limit": 5}]}')

    assert validate_rules.validate_rules_file(path) == []


def test_invalid_entry_reports_position(validate_rules, tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "post_rules:\n"
        "  - {post_type: post, type: limit, limit: 3}\n"
        "  - {post_type: post, type: age, time: 6, unit: fortnight}\n"
    )

    errors = validate_rules.validate_rules_file(path)

    assert len(errors) == 1
    assert errors[0].startswith("post_rules[1]: ")
    assert validate_rules.main([str(path)]) == 1


def test_structural_errors(validate_rules, tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n")
    unrelated = tmp_path / "other.yaml"
    unrelated.write_text("enabled: true\n")

    assert validate_rules.validate_rules_file(empty) == ["Document is empty"]
    assert validate_rules.validate_rules_file(listing)
    assert validate_rules.validate_rules_file(unrelated) == ["Document defines neither role_rules nor post_rules"]
    assert validate_rules.validate_rules_file(tmp_path / "missing.yaml")[0].startswith("Error reading file")


def test_no_arguments(validate_rules):
    assert validate_rules.main([]) == 2
