"""History entry schemas."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class HistoryEntryCreate(BaseModel):
    """Manual entry written by an operator."""

    action: str
    details: str
    additional_info: Optional[dict[str, Any]] = None


class HistoryEntryRead(BaseModel):
    id: int
    record_id: int
    action: str
    details: str
    additional_info: dict[str, Any] = {}
    timestamp: datetime

    @field_validator("timestamp", mode="before")
    @classmethod
    def ensure_timezone(cls, v):
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    model_config = ConfigDict(from_attributes=True)
