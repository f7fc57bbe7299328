"""Follow-up reminder schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FollowUpRead(BaseModel):
    id: int
    lead_id: int
    kind: str
    phone: str
    name: str
    due_date: str
    due_time: str
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
