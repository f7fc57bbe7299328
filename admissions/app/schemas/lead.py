"""Lead schemas using the external (camelCase) field names."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Checked by the lead validator, not by request parsing
FieldValue = Any


class LeadPayload(BaseModel):
    """Create or partial-update body.

    Values are not type-checked here: the lead validator reports a wrong type
    per field, alongside every other field error.
    """

    parentsName: Optional[FieldValue] = None
    kidsName: Optional[FieldValue] = None
    phone: Optional[FieldValue] = None
    secondPhone: Optional[FieldValue] = None
    email: Optional[FieldValue] = None
    location: Optional[FieldValue] = None
    grade: Optional[FieldValue] = None
    stage: Optional[FieldValue] = None
    counsellor: Optional[FieldValue] = None
    offer: Optional[FieldValue] = None
    notes: Optional[FieldValue] = None
    source: Optional[FieldValue] = None
    occupation: Optional[FieldValue] = None
    currentSchool: Optional[FieldValue] = None
    meetingDate: Optional[FieldValue] = None
    meetingTime: Optional[FieldValue] = None
    meetingLink: Optional[FieldValue] = None
    visitDate: Optional[FieldValue] = None
    visitTime: Optional[FieldValue] = None
    visitLocation: Optional[FieldValue] = None
    registrationFees: Optional[FieldValue] = None
    enrolled: Optional[FieldValue] = None
    customFields: Optional[FieldValue] = None


class LeadRead(BaseModel):
    id: int
    parentsName: str
    kidsName: str
    phone: str
    secondPhone: str = ""
    email: str = ""
    location: str = ""
    grade: str = ""
    stage: str
    stageKey: str
    previousStage: Optional[str] = None
    score: int
    category: str
    color: str
    counsellor: str = ""
    offer: str = ""
    notes: str = ""
    source: str = ""
    occupation: str = ""
    currentSchool: str = ""
    meetingDate: str = ""
    meetingTime: str = ""
    meetingLink: str = ""
    visitDate: str = ""
    visitTime: str = ""
    visitLocation: str = ""
    registrationFees: str = ""
    enrolled: str = ""
    stageStatuses: dict[str, str]
    customFields: dict[str, str] = {}
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("createdAt", "updatedAt", mode="before")
    @classmethod
    def ensure_timezone(cls, v):
        if isinstance(v, str):
            v = datetime.fromisoformat(v.replace("Z", "+00:00"))
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SideEffectRead(BaseModel):
    name: str
    ok: bool
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LeadMutationResponse(BaseModel):
    success: bool = True
    message: str
    data: LeadRead
    side_effects: list[SideEffectRead] = []


class ClearedStatusRead(BaseModel):
    leadId: int
    statusField: str


class ClearExpiredResponse(BaseModel):
    success: bool = True
    cleared: list[ClearedStatusRead]


class LeadImportRequest(BaseModel):
    leads: list[LeadPayload]


class ImportRowError(BaseModel):
    row: int
    error: str
    phone: Optional[str] = None
    details: Optional[dict[str, str]] = None


class LeadImportResponse(BaseModel):
    success: bool = True
    totalRows: int
    inserted: int
    duplicates: int
    errors: list[ImportRowError]
    leadIds: list[int]
    side_effects: list[SideEffectRead] = []
