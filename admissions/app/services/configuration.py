"""Load configuration rows and group them into a typed snapshot.

Every tenant-configurable list the lead pipeline depends on (stages, grades,
sources, counsellors, custom fields, the organization profile) lives as rows
of one generic ``configuration_items`` table. ``load_snapshot`` reads them
fresh on every call and routes each row through an explicit type -> parser
mapping, so callers work with typed items instead of raw ``value`` maps.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.app.core.errors import ConfigUnavailable
from admissions.app.models.configuration_item import ConfigurationItem

logger = logging.getLogger(__name__)

DEFAULT_STAGE_SCORE = 20
DEFAULT_STAGE_CATEGORY = "New"
DEFAULT_STAGE_COLOR = "#B3D7FF"


class ConfigType(str, Enum):
    STAGE = "stage"
    GRADE = "grade"
    SOURCE = "source"
    COUNSELLOR = "counsellor"
    CUSTOM_FIELD = "custom_field"
    ORGANIZATION_PROFILE = "organization_profile"


@dataclass(frozen=True)
class Stage:
    id: int | None
    name: str
    stage_key: str
    score: int = DEFAULT_STAGE_SCORE
    category: str = DEFAULT_STAGE_CATEGORY
    color: str = DEFAULT_STAGE_COLOR
    is_active: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class Grade:
    id: int | None
    name: str
    is_active: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class Source:
    id: int | None
    name: str
    is_active: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class Counsellor:
    id: int | None
    name: str
    user_id: str | None = None
    is_active: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class CustomFieldDefinition:
    id: int | None
    name: str
    field_key: str
    input_type: str = "text"
    dropdown_options: tuple[str, ...] = ()
    is_active: bool = True
    sort_order: int = 0


ConfigEntry = Stage | Grade | Source | Counsellor | CustomFieldDefinition


@dataclass
class ConfigurationSnapshot:
    stages: list[Stage] = field(default_factory=list)
    grades: list[Grade] = field(default_factory=list)
    sources: list[Source] = field(default_factory=list)
    counsellors: list[Counsellor] = field(default_factory=list)
    custom_fields: list[CustomFieldDefinition] = field(default_factory=list)
    organization_profile: dict[str, Any] = field(default_factory=dict)

    def active_stages(self) -> list[Stage]:
        return [s for s in self.stages if s.is_active]

    def active_grades(self) -> list[Grade]:
        return [g for g in self.grades if g.is_active]

    def active_sources(self) -> list[Source]:
        return [s for s in self.sources if s.is_active]

    def active_counsellors(self) -> list[Counsellor]:
        return [c for c in self.counsellors if c.is_active]

    def active_custom_fields(self) -> list[CustomFieldDefinition]:
        return [f for f in self.custom_fields if f.is_active]

    def field_label(self, field_key: str, default: str | None = None) -> str:
        """Display label for a lead field, taken from its custom-field definition."""
        for definition in self.custom_fields:
            if definition.field_key == field_key and definition.name:
                return definition.name
        return default or field_key

    def as_dict(self) -> dict[str, Any]:
        return {
            "stages": [vars(s) for s in self.stages],
            "grades": [vars(g) for g in self.grades],
            "sources": [vars(s) for s in self.sources],
            "counsellors": [{**vars(c), "userId": c.user_id} for c in self.counsellors],
            "custom_fields": [{**vars(f), "dropdown_options": list(f.dropdown_options)} for f in self.custom_fields],
            "organization_profile": dict(self.organization_profile),
        }


def _is_active(row) -> bool:
    return row.is_active is None or bool(row.is_active)


def _int_or_default(raw: Any, default: int) -> int:
    if not raw:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_stage(row, value: dict) -> Stage:
    return Stage(
        id=row.id,
        name=row.name,
        stage_key=row.stage_key or row.name,
        score=_int_or_default(value.get("score"), DEFAULT_STAGE_SCORE),
        # Stages carry their category under "status"; older rows use "category"
        category=value.get("status") or value.get("category") or DEFAULT_STAGE_CATEGORY,
        color=value.get("color") or DEFAULT_STAGE_COLOR,
        is_active=_is_active(row),
        sort_order=row.sort_order or 0,
    )


def _parse_grade(row, value: dict) -> Grade:
    return Grade(id=row.id, name=row.name, is_active=_is_active(row), sort_order=row.sort_order or 0)


def _parse_source(row, value: dict) -> Source:
    return Source(id=row.id, name=row.name, is_active=_is_active(row), sort_order=row.sort_order or 0)


def _parse_counsellor(row, value: dict) -> Counsellor:
    user_id = value.get("user_id")
    return Counsellor(
        id=row.id,
        name=row.name,
        user_id=str(user_id) if user_id else None,
        is_active=_is_active(row),
        sort_order=row.sort_order or 0,
    )


def _parse_custom_field(row, value: dict) -> CustomFieldDefinition:
    options = value.get("dropdown_options") or []
    return CustomFieldDefinition(
        id=row.id,
        name=row.name,
        field_key=row.field_key or row.name,
        input_type=value.get("input_type") or value.get("field_type") or "text",
        dropdown_options=tuple(str(o) for o in options),
        is_active=_is_active(row),
        sort_order=row.sort_order or 0,
    )


_PARSERS: dict[ConfigType, tuple[str, Callable[[Any, dict], ConfigEntry]]] = {
    ConfigType.STAGE: ("stages", _parse_stage),
    ConfigType.GRADE: ("grades", _parse_grade),
    ConfigType.SOURCE: ("sources", _parse_source),
    ConfigType.COUNSELLOR: ("counsellors", _parse_counsellor),
    ConfigType.CUSTOM_FIELD: ("custom_fields", _parse_custom_field),
}


def build_snapshot(rows: Iterable[ConfigurationItem]) -> ConfigurationSnapshot:
    """Group rows (already in ``sort_order``) into a snapshot."""
    snapshot = ConfigurationSnapshot()
    for row in rows:
        try:
            config_type = ConfigType(row.type)
        except ValueError:
            logger.warning("Dropping configuration row id=%s with unknown type=%r", row.id, row.type)
            continue
        value = row.value if isinstance(row.value, dict) else {}
        if config_type is ConfigType.ORGANIZATION_PROFILE:
            snapshot.organization_profile = dict(value)
            continue
        bucket, parser = _PARSERS[config_type]
        getattr(snapshot, bucket).append(parser(row, value))
    return snapshot


def load_snapshot(db: Session) -> ConfigurationSnapshot:
    """Read every configuration row and group it. Never cached."""
    try:
        rows = (
            db.query(ConfigurationItem)
            .order_by(ConfigurationItem.sort_order.asc(), ConfigurationItem.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error("Configuration store unavailable: %s", exc)
        raise ConfigUnavailable("Configuration store unavailable") from exc
    return build_snapshot(rows)
