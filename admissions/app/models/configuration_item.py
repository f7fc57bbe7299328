"""Generic configuration rows: stages, grades, sources, counsellors, custom fields."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from admissions.app.db.base_class import Base
from admissions.app.core.time import utc_now


class ConfigurationItem(Base):
    __tablename__ = "configuration_items"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    name = Column(String, nullable=False)
    field_key = Column(String, nullable=True)
    stage_key = Column(String, nullable=True)
    # NULL is treated as active
    is_active = Column(Boolean, nullable=True, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
