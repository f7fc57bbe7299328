"""Append-only lead history.

Writes are best effort: a failed insert is rolled back and logged, and the
operation that triggered it carries on.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.app.core.settings import get_settings
from admissions.app.core.time import utc_now
from admissions.app.models.history_entry import HistoryEntry

logger = logging.getLogger(__name__)

LEAD_CREATED = "Lead Created"
LEAD_UPDATED = "Lead Information Updated"
STAGE_UPDATED = "Stage Updated"
MEETING_SCHEDULED = "Meeting Scheduled"
VISIT_SCHEDULED = "Visit Scheduled"
MESSAGE_SENT = "WhatsApp Message Sent"
STATUS_CLEARED = "Stage Status Cleared"

FIELD_LABELS = {
    "parentsName": "Parent Name",
    "kidsName": "Kid Name",
    "email": "Email",
    "occupation": "Occupation",
    "location": "Location",
    "currentSchool": "Current School",
    "meetingDate": "Meeting Date",
    "meetingTime": "Meeting Time",
    "meetingLink": "Meeting Link",
    "visitDate": "Visit Date",
    "visitTime": "Visit Time",
    "visitLocation": "Visit Location",
    "registrationFees": "Registration Fees",
    "enrolled": "Enrollment Status",
    "offer": "Offer",
    "stage": "Stage",
    "counsellor": "Counsellor",
    "source": "Source",
    "phone": "Phone",
    "secondPhone": "Secondary Phone",
    "grade": "Grade",
    "notes": "Notes",
}

NOT_SET = "Not set"


def _format_date(value: Any) -> str:
    if not value:
        return NOT_SET
    try:
        return date.fromisoformat(str(value)[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def _format_phone(value: Any) -> str:
    if not value:
        return NOT_SET
    prefix = get_settings().country_code
    text = str(value)
    return text if text.startswith(prefix) else f"{prefix}{text}"


def describe_changes(changes: dict[str, tuple[Any, Any]]) -> str:
    """Summarise ``{field: (old, new)}`` as ``Label: "old" -> "new"`` pairs."""
    parts = []
    for field_name, (old, new) in changes.items():
        label = FIELD_LABELS.get(field_name, field_name)
        if field_name in ("meetingDate", "visitDate"):
            old_text, new_text = _format_date(old), _format_date(new)
        elif field_name in ("phone", "secondPhone"):
            old_text, new_text = _format_phone(old), _format_phone(new)
        else:
            old_text, new_text = old or NOT_SET, new or NOT_SET
        parts.append(f'{label}: "{old_text}" -> "{new_text}"')
    return ", ".join(parts)


class AuditLogger:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def record(self, lead_id: int, action: str, details: str, context: dict[str, Any] | None = None) -> HistoryEntry | None:
        now = self.clock()
        entry = HistoryEntry(
            record_id=lead_id,
            action=action,
            details=details,
            additional_info={**(context or {}), "timestamp": now.isoformat()},
            timestamp=now,
        )
        try:
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("History write failed lead_id=%s action=%r: %s", lead_id, action, exc)
            return None
        return entry

    def history_for(self, lead_id: int) -> list[HistoryEntry]:
        return (
            self.db.query(HistoryEntry)
            .filter(HistoryEntry.record_id == lead_id)
            .order_by(HistoryEntry.timestamp.desc(), HistoryEntry.id.desc())
            .all()
        )
