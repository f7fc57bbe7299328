"""Schemas for configuration items managed from the settings screen."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

from admissions.app.services.configuration import ConfigType


class ConfigurationItemCreate(BaseModel):
    type: ConfigType
    name: str
    field_key: Optional[str] = None
    stage_key: Optional[str] = None
    is_active: Optional[bool] = True
    sort_order: Optional[int] = None
    value: dict[str, Any] = {}


class ConfigurationItemUpdate(BaseModel):
    """Partial update; ``type`` is fixed once an item exists."""

    name: Optional[str] = None
    field_key: Optional[str] = None
    stage_key: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    value: Optional[dict[str, Any]] = None


class ConfigurationItemRead(BaseModel):
    id: int
    type: str
    name: str
    field_key: Optional[str] = None
    stage_key: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: int
    value: Optional[dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StageMove(BaseModel):
    direction: Literal["up", "down"]
