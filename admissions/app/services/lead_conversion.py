"""Convert validated external lead payloads into the stored shape and back.

The converter assumes its input already passed ``lead_validation.validate``;
it never rejects data. Whenever it falls back to a default instead of using
caller input it logs a ``conversion default applied`` line so the two cases
can be told apart when debugging.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping

from admissions.app.core.settings import get_settings
from admissions.app.core.time import utc_now
from admissions.app.services.configuration import ConfigurationSnapshot
from admissions.app.services.lead_validation import UNASSIGNED_COUNSELLOR, phone_digits
from admissions.app.services.stage_keys import display_name, resolve_display, resolve_key

logger = logging.getLogger(__name__)

DEFAULT_GRADE = "LKG"
DEFAULT_SOURCE = "Instagram"
DEFAULT_STAGE_NAME = "New Lead"
DEFAULT_OFFER = "No offer"
NO_RESPONSE_STAGE = "No Response"

# External (API) field name -> storage column
EXTERNAL_TO_STORAGE = {
    "parentsName": "parents_name",
    "kidsName": "kids_name",
    "phone": "phone",
    "secondPhone": "second_phone",
    "email": "email",
    "location": "location",
    "grade": "grade",
    "stage": "stage",
    "counsellor": "counsellor",
    "offer": "offer",
    "notes": "notes",
    "source": "source",
    "occupation": "occupation",
    "currentSchool": "current_school",
    "meetingDate": "meeting_date",
    "meetingTime": "meeting_time",
    "meetingLink": "meeting_link",
    "visitDate": "visit_date",
    "visitTime": "visit_time",
    "visitLocation": "visit_location",
    "registrationFees": "registration_fees",
    "enrolled": "enrolled",
}
STORAGE_TO_EXTERNAL = {v: k for k, v in EXTERNAL_TO_STORAGE.items()}

PHONE_FIELDS = {"phone", "secondPhone"}
STAGE_STATUS_FIELDS = (
    "stage2_status",
    "stage4_status",
    "stage5_status",
    "stage7_status",
    "stage8_status",
    "stage9_status",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _default_applied(field_name: str, value: Any) -> None:
    logger.info("conversion default applied field=%s value=%r", field_name, value)


def normalize_phone(value: Any, country_code: str | None = None) -> str:
    """Strip everything but digits and prefix the country code; blank stays blank."""
    digits = phone_digits(value)
    if not digits:
        return ""
    prefix = country_code if country_code is not None else get_settings().country_code
    return f"{prefix}{digits}"


def format_phone_for_display(value: str | None, country_code: str | None = None) -> str:
    if not value:
        return ""
    prefix = country_code if country_code is not None else get_settings().country_code
    return value.removeprefix(prefix).strip()


FALLBACKS: dict[str, Callable[[ConfigurationSnapshot], str]] = {
    "stage": lambda s: next((x.name for x in s.active_stages()), DEFAULT_STAGE_NAME),
    "grade": lambda s: next((g.name for g in s.active_grades()), DEFAULT_GRADE),
    "source": lambda s: next((x.name for x in s.active_sources()), DEFAULT_SOURCE),
    "counsellor": lambda s: UNASSIGNED_COUNSELLOR,
    "offer": lambda s: DEFAULT_OFFER,
}
# Blank values fall back to a default on update as well as on create
DEFAULTED_FIELDS = ("grade", "source", "counsellor", "offer")


def _value_or_default(value: Any, field_name: str, snapshot: ConfigurationSnapshot) -> str:
    chosen = _text(value).strip()
    if chosen:
        return chosen
    chosen = FALLBACKS[field_name](snapshot)
    _default_applied(field_name, chosen)
    return chosen


def stage_attributes(stage_value: str | None, snapshot: ConfigurationSnapshot) -> dict[str, Any]:
    """Resolve a stage name or key to its stored key plus derived score and category."""
    stage_key = resolve_key(stage_value, snapshot)
    display = resolve_display(stage_key, snapshot)
    return {"stage": stage_key, "score": display.score, "category": display.category}


def to_storage(
    payload: Mapping[str, Any],
    snapshot: ConfigurationSnapshot,
    now: datetime | None = None,
    country_code: str | None = None,
) -> dict[str, Any]:
    # Stage first: score and category hang off the resolved key
    record = stage_attributes(_value_or_default(payload.get("stage"), "stage", snapshot), snapshot)

    record["phone"] = normalize_phone(payload.get("phone"), country_code)
    record["second_phone"] = normalize_phone(payload.get("secondPhone"), country_code)
    for field_name in DEFAULTED_FIELDS:
        record[field_name] = _value_or_default(payload.get(field_name), field_name, snapshot)

    record.update(
        {
            "parents_name": _text(payload.get("parentsName")),
            "kids_name": _text(payload.get("kidsName")),
            "email": _text(payload.get("email")),
            "location": _text(payload.get("location")),
            "notes": _text(payload.get("notes")),
            "occupation": _text(payload.get("occupation")),
            "current_school": _text(payload.get("currentSchool")),
        }
    )
    for external in ("meetingDate", "meetingTime", "meetingLink", "visitDate", "visitTime", "visitLocation"):
        record[EXTERNAL_TO_STORAGE[external]] = _text(payload.get(external))

    record["updated_at"] = now or utc_now()
    return record


def to_storage_patch(
    patch: Mapping[str, Any],
    snapshot: ConfigurationSnapshot,
    now: datetime | None = None,
    country_code: str | None = None,
) -> dict[str, Any]:
    """Convert only the fields present in a partial update.

    A blank stage leaves the stored stage untouched; blank grade, source,
    counsellor or offer fall back to the same defaults as on create.
    """
    changes: dict[str, Any] = {}
    for external, column in EXTERNAL_TO_STORAGE.items():
        if external not in patch:
            continue
        value = patch.get(external)
        if external in PHONE_FIELDS:
            changes[column] = normalize_phone(value, country_code)
        elif external == "stage":
            stage_value = _text(value).strip()
            if stage_value:
                changes.update(stage_attributes(stage_value, snapshot))
        elif external in DEFAULTED_FIELDS:
            changes[column] = _value_or_default(value, external, snapshot)
        else:
            changes[column] = _text(value)
    if changes:
        changes["updated_at"] = now or utc_now()
    return changes


def previous_stage_change(old_key: str | None, new_key: str, snapshot: ConfigurationSnapshot) -> dict[str, Any]:
    """Remember where a lead came from while it sits in "No Response"."""
    old_name = display_name(old_key, snapshot)
    new_name = display_name(new_key, snapshot)
    if new_name == NO_RESPONSE_STAGE and old_name != NO_RESPONSE_STAGE:
        return {"previous_stage": old_key}
    if old_name == NO_RESPONSE_STAGE and new_name != NO_RESPONSE_STAGE:
        return {"previous_stage": None}
    return {}


def custom_field_values(payload: Mapping[str, Any], snapshot: ConfigurationSnapshot) -> list[tuple[str, str]]:
    values = payload.get("customFields")
    if not isinstance(values, Mapping):
        return []
    known = {f.field_key for f in snapshot.active_custom_fields()}
    return [(key, _text(value)) for key, value in values.items() if key in known]


def _iso(value: Any) -> str | None:
    return value.isoformat() if isinstance(value, datetime) else value


def to_external(lead: Any, snapshot: ConfigurationSnapshot, country_code: str | None = None) -> dict[str, Any]:
    """Project a stored lead back to external names, with the stage as a display name."""
    display = resolve_display(lead.stage, snapshot)
    data: dict[str, Any] = {"id": lead.id}
    for column, external in STORAGE_TO_EXTERNAL.items():
        data[external] = getattr(lead, column, "") or ""
    data["phone"] = format_phone_for_display(lead.phone, country_code)
    data["secondPhone"] = format_phone_for_display(lead.second_phone, country_code)
    data["stage"] = display.name
    data["stageKey"] = lead.stage
    data["previousStage"] = display_name(lead.previous_stage, snapshot) if lead.previous_stage else None
    data["score"] = lead.score
    data["category"] = lead.category
    data["color"] = display.color
    data["stageStatuses"] = {name: getattr(lead, name, "") or "" for name in STAGE_STATUS_FIELDS}
    custom = getattr(lead, "custom_fields", None) or []
    data["customFields"] = {row.field_key: row.value for row in custom}
    data["createdAt"] = _iso(getattr(lead, "created_at", None))
    data["updatedAt"] = _iso(getattr(lead, "updated_at", None))
    return data
