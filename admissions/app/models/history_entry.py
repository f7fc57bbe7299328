"""Append-only history of what happened to a lead."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from admissions.app.db.base_class import Base
from admissions.app.core.time import utc_now


class HistoryEntry(Base):
    __tablename__ = "history_entries"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, nullable=False, index=True)
    action = Column(String(100), nullable=False)
    details = Column(Text, nullable=False)
    additional_info = Column(JSON, nullable=False, default=dict)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
