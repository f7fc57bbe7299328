"""Form metadata for lead intake clients (dropdowns, labels, rules, defaults)."""

from typing import Any

from admissions.app.services.configuration import DEFAULT_STAGE_CATEGORY, DEFAULT_STAGE_SCORE, ConfigurationSnapshot
from admissions.app.services.lead_conversion import (
    DEFAULT_GRADE,
    DEFAULT_OFFER,
    DEFAULT_SOURCE,
    DEFAULT_STAGE_NAME,
)
from admissions.app.services.lead_validation import EMAIL_PATTERN, UNASSIGNED_COUNSELLOR

REQUIRED_FIELDS = ["parentsName", "kidsName", "phone"]
OPTIONAL_FIELDS = ["location", "secondPhone", "email", "occupation", "notes"]
FALLBACK_OFFERS = ["30000 Scholarship", "10000 Discount", "Welcome Kit", "Accessible Kit"]

LABEL_DEFAULTS = {
    "parentsName": "Parent Name",
    "kidsName": "Kid Name",
    "phone": "Phone",
    "secondPhone": "Secondary Phone",
    "email": "Email",
    "location": "Location",
    "grade": "Grade",
    "source": "Source",
    "stage": "Stage",
    "counsellor": "Counsellor",
    "offer": "Offer",
    "occupation": "Occupation",
    "notes": "Notes",
}

PHONE_PATTERN = "^[0-9]{10}$"


def _offers(snapshot: ConfigurationSnapshot) -> list[str]:
    for definition in snapshot.active_custom_fields():
        if definition.field_key == "offer" or definition.name == "Offer":
            if definition.dropdown_options:
                return [DEFAULT_OFFER, *definition.dropdown_options]
    return [DEFAULT_OFFER, *FALLBACK_OFFERS]


def _option(value: str, item_id: int | None = None, **extra) -> dict[str, Any]:
    option: dict[str, Any] = {"value": value, "label": value}
    if item_id is not None:
        option["id"] = item_id
    option.update(extra)
    return option


def build_options(snapshot: ConfigurationSnapshot) -> dict[str, Any]:
    stages = snapshot.active_stages()
    grades = snapshot.active_grades()
    sources = snapshot.active_sources()
    return {
        "requiredFields": list(REQUIRED_FIELDS),
        "optionalFields": list(OPTIONAL_FIELDS),
        "dropdownOptions": {
            "grades": [_option(g.name, g.id) for g in grades],
            "sources": [_option(s.name, s.id) for s in sources],
            "stages": [
                _option(
                    s.name,
                    s.id,
                    stageKey=s.stage_key,
                    color=s.color,
                    score=s.score,
                    category=s.category,
                )
                for s in stages
            ],
            "counsellors": [_option(UNASSIGNED_COUNSELLOR)]
            + [_option(c.name, c.id) for c in snapshot.active_counsellors()],
            "offers": [_option(o) for o in _offers(snapshot)],
        },
        "fieldLabels": {key: snapshot.field_label(key, label) for key, label in LABEL_DEFAULTS.items()},
        "validationRules": {
            "phone": {
                "required": True,
                "type": "string",
                "pattern": PHONE_PATTERN,
                "description": "Must be exactly 10 digits (without country code)",
            },
            "secondPhone": {
                "required": False,
                "type": "string",
                "pattern": PHONE_PATTERN,
                "description": "Must be exactly 10 digits (without country code) if provided",
            },
            "email": {
                "required": False,
                "type": "email",
                "pattern": EMAIL_PATTERN.pattern,
                "description": "Must be a valid email format if provided",
            },
            "parentsName": {"required": True, "type": "string", "minLength": 1},
            "kidsName": {"required": True, "type": "string", "minLength": 1},
        },
        "defaultValues": {
            "grade": grades[0].name if grades else DEFAULT_GRADE,
            "source": sources[0].name if sources else DEFAULT_SOURCE,
            "stage": stages[0].name if stages else DEFAULT_STAGE_NAME,
            "counsellor": UNASSIGNED_COUNSELLOR,
            "offer": DEFAULT_OFFER,
            "category": DEFAULT_STAGE_CATEGORY,
            "score": DEFAULT_STAGE_SCORE,
        },
    }
