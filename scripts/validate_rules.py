#!/usr/bin/env python3
"""
Rule document validation script for the Comment Control service.
Validates YAML or JSON rule documents before they are loaded into a
settings store.

Usage: validate_rules.py FILE [FILE ...]
"""

import sys
import yaml
from pathlib import Path
from typing import List

from shared.errors import ConfigurationError
from service_comment_control.app.rules.loader import load_rule_set


def validate_rules_file(path: Path) -> List[str]:
    """Validate a single rule document."""
    errors = []

    try:
        with open(path, 'r') as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        errors.append(f"Invalid YAML/JSON: {e}")
        return errors
    except OSError as e:
        errors.append(f"Error reading file: {e}")
        return errors

    if document is None:
        errors.append("Document is empty")
        return errors

    if not isinstance(document, dict):
        errors.append("Document must be a mapping with role_rules and/or post_rules")
        return errors

    if "role_rules" not in document and "post_rules" not in document:
        errors.append("Document defines neither role_rules nor post_rules")

    try:
        rules = load_rule_set(document)
    except ConfigurationError as e:
        location = ""
        if "list" in e.details:
            location = f"{e.details['list']}[{e.details.get('index')}]: "
        errors.append(f"{location}{e.message}")
        return errors

    for rule in rules.post_rules:
        if rule.kind.value == "age" and rule.max_comments is not None:
            print(f"  Warning: age rule for '{rule.post_type}' also sets a limit; it only applies in legacy mode")

    return errors


def main(argv: List[str]) -> int:
    """Validate every file given on the command line."""
    if not argv:
        print(__doc__.strip())
        return 2

    total_errors = 0
    for name in argv:
        path = Path(name)
        print(f"Validating {path}...")
        errors = validate_rules_file(path)
        if errors:
            for error in errors:
                print(f"  ❌ {error}")
            total_errors += len(errors)
        else:
            print("  ✅ Valid")

    if total_errors:
        print(f"\n❌ Found {total_errors} error(s)")
        return 1

    print("\n✅ All rule documents are valid")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
