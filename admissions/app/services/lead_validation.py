"""Validate inbound lead payloads against the configuration snapshot.

Payloads use the external field names (``parentsName``, ``kidsName``,
``phone``...). Every rule runs; the result maps field name to message and is
empty when the payload is valid.
"""

import re
from typing import Any, Callable, Mapping

from admissions.app.services.configuration import ConfigurationSnapshot

UNASSIGNED_COUNSELLOR = "Assign Counsellor"
PHONE_DIGITS = 10

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_DIGITS = re.compile(r"\D")
SCALAR_MESSAGE = "Must be text or a number"

Rule = Callable[[Any, ConfigurationSnapshot], str | None]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def phone_digits(value: Any) -> str:
    return NON_DIGITS.sub("", _text(value))


def _is_scalar(value: Any) -> bool:
    # bool is an int subclass; a checkbox value is not a phone number
    return value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool))


def _check_parents_name(value, snapshot) -> str | None:
    if not _text(value):
        return "Parent name is required"
    return None


def _check_kids_name(value, snapshot) -> str | None:
    if not _text(value):
        return "Kid name is required"
    return None


def _check_phone(value, snapshot) -> str | None:
    if not _text(value):
        return "Phone number is required"
    if len(phone_digits(value)) != PHONE_DIGITS:
        return "Phone number must be exactly 10 digits"
    return None


def _check_second_phone(value, snapshot) -> str | None:
    if _text(value) and len(phone_digits(value)) != PHONE_DIGITS:
        return "Secondary phone must be exactly 10 digits"
    return None


def _check_email(value, snapshot) -> str | None:
    email = _text(value)
    if email and not EMAIL_PATTERN.match(email):
        return "Please enter a valid email address"
    return None


def _option_rule(label: str, names: Callable[[ConfigurationSnapshot], list[str]], always_valid: tuple[str, ...] = ()) -> Rule:
    def check(value, snapshot) -> str | None:
        chosen = _text(value)
        if not chosen or chosen in always_valid:
            return None
        valid = names(snapshot)
        # Nothing configured means no constraint, not "nothing is valid"
        if not valid or chosen in valid:
            return None
        return f"Invalid {label}. Valid options: {', '.join(valid)}"

    return check


def _active_stage_values(snapshot: ConfigurationSnapshot) -> list[str]:
    return [s.name for s in snapshot.active_stages()]


def _check_stage(value, snapshot) -> str | None:
    chosen = _text(value)
    # A stage key of an active stage is as good as its name
    if chosen and any(s.stage_key == chosen for s in snapshot.active_stages()):
        return None
    return _option_rule("stage", _active_stage_values)(value, snapshot)


RULES: list[tuple[str, Rule]] = [
    ("parentsName", _check_parents_name),
    ("kidsName", _check_kids_name),
    ("phone", _check_phone),
    ("secondPhone", _check_second_phone),
    ("email", _check_email),
    ("grade", _option_rule("grade", lambda s: [g.name for g in s.active_grades()])),
    ("source", _option_rule("source", lambda s: [x.name for x in s.active_sources()])),
    (
        "counsellor",
        _option_rule("counsellor", lambda s: [c.name for c in s.active_counsellors()], (UNASSIGNED_COUNSELLOR,)),
    ),
    ("stage", _check_stage),
]


def _validate_custom_fields(values: Any, snapshot: ConfigurationSnapshot) -> dict[str, str]:
    if values is None:
        return {}
    if not isinstance(values, Mapping):
        return {"customFields": "Custom fields must be an object"}
    definitions = {f.field_key: f for f in snapshot.active_custom_fields()}
    errors: dict[str, str] = {}
    for field_key, raw in values.items():
        key = f"customFields.{field_key}"
        definition = definitions.get(field_key)
        if definition is None:
            errors[key] = f"Unknown custom field: {field_key}"
            continue
        if not _is_scalar(raw):
            errors[key] = SCALAR_MESSAGE
            continue
        chosen = _text(raw)
        if chosen and definition.dropdown_options and chosen not in definition.dropdown_options:
            errors[key] = f"Invalid {definition.name}. Valid options: {', '.join(definition.dropdown_options)}"
    return errors


def _check_fields(payload: Mapping[str, Any], snapshot: ConfigurationSnapshot, present_only: bool) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field_name, value in payload.items():
        if field_name != "customFields" and not _is_scalar(value):
            errors[field_name] = SCALAR_MESSAGE
    for field_name, rule in RULES:
        if field_name in errors or (present_only and field_name not in payload):
            continue
        message = rule(payload.get(field_name), snapshot)
        if message:
            errors[field_name] = message
    errors.update(_validate_custom_fields(payload.get("customFields"), snapshot))
    return errors


def validate(payload: Mapping[str, Any], snapshot: ConfigurationSnapshot) -> dict[str, str]:
    return _check_fields(payload, snapshot, present_only=False)


def validate_update(patch: Mapping[str, Any], snapshot: ConfigurationSnapshot) -> dict[str, str]:
    """Apply the same rules, but only to the fields present in a partial update."""
    return _check_fields(patch, snapshot, present_only=True)
