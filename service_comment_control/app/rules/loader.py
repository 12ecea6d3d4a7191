"""
Conversion between stored rule records and typed rules.

Stored records use the settings-form field names: role rules carry
``role``, ``type`` (always/never) and ``post_type``; post rules carry
``post_type``, ``type`` (age/limit), ``time``, ``unit`` and ``limit``.
Form submissions post numbers as strings, so numeric fields are coerced.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from shared.errors import ConfigurationError
from .models import AgeUnit, PostRule, PostRuleKind, RoleRule, RuleSet, Verdict


def _require(record: Mapping[str, Any], key: str) -> Any:
    value = record.get(key)
    if value is None or value == "":
        raise ConfigurationError(f"Missing required field: {key}", {"field": key})
    return value


def _to_int(value: Any, key: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigurationError(f"Field {key} must be an integer", {"field": key, "value": value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Field {key} must be an integer", {"field": key, "value": value})


def _to_enum(enum_cls, value: Any, key: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ConfigurationError(
            f"Invalid value for {key}: {value}",
            {"field": key, "value": value, "allowed": allowed}
        )


def load_role_rule(record: Mapping[str, Any]) -> RoleRule:
    """Validate a stored role rule record."""
    if not isinstance(record, Mapping):
        raise ConfigurationError("Role rule must be a mapping", {"value": repr(record)})
    return RoleRule(
        role=str(_require(record, "role")).strip(),
        post_type=str(_require(record, "post_type")).strip(),
        verdict=_to_enum(Verdict, _require(record, "type"), "type"),
    )


def load_post_rule(record: Mapping[str, Any]) -> PostRule:
    """Validate a stored post rule record."""
    if not isinstance(record, Mapping):
        raise ConfigurationError("Post rule must be a mapping", {"value": repr(record)})
    kind = _to_enum(PostRuleKind, _require(record, "type"), "type")
    unit = record.get("unit")
    return PostRule(
        post_type=str(_require(record, "post_type")).strip(),
        kind=kind,
        amount=_to_int(record.get("time"), "time"),
        unit=_to_enum(AgeUnit, unit, "unit") if unit not in (None, "") else None,
        max_comments=_to_int(record.get("limit"), "limit"),
    )


def _load_list(document: Mapping[str, Any], key: str, loader) -> List:
    records = document.get(key) or []
    if not isinstance(records, Sequence) or isinstance(records, (str, bytes)):
        raise ConfigurationError(f"{key} must be a list", {"field": key})

    rules = []
    for index, record in enumerate(records):
        try:
            rules.append(loader(record))
        except ConfigurationError as e:
            e.details.update({"list": key, "index": index})
            raise
    return rules


def load_rule_set(document: Mapping[str, Any]) -> RuleSet:
    """Validate a rule document into a ``RuleSet``, preserving order."""
    return RuleSet(
        role_rules=_load_list(document, "role_rules", load_role_rule),
        post_rules=_load_list(document, "post_rules", load_post_rule),
    )


def dump_role_rule(rule: RoleRule) -> Dict[str, Any]:
    return {"role": rule.role, "type": rule.verdict.value, "post_type": rule.post_type}


def dump_post_rule(rule: PostRule) -> Dict[str, Any]:
    record: Dict[str, Any] = {"post_type": rule.post_type, "type": rule.kind.value}
    if rule.amount is not None:
        record["time"] = rule.amount
    if rule.unit is not None:
        record["unit"] = rule.unit.value
    if rule.max_comments is not None:
        record["limit"] = rule.max_comments
    return record


def dump_rule_set(rules: RuleSet) -> Dict[str, Any]:
    """Render a ``RuleSet`` back into stored record form."""
    return {
        "role_rules": [dump_role_rule(rule) for rule in rules.role_rules],
        "post_rules": [dump_post_rule(rule) for rule in rules.post_rules],
    }
