"""Follow-up reminders scheduled for a lead's meeting or visit."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from admissions.app.db.base_class import Base
from admissions.app.core.time import utc_now

FOLLOW_UP_SCHEDULED = "scheduled"
FOLLOW_UP_CANCELLED = "cancelled"


class FollowUp(Base):
    __tablename__ = "follow_ups"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    kind = Column(String(16), nullable=False)
    phone = Column(String(20), nullable=False, default="")
    name = Column(String, nullable=False, default="")
    due_date = Column(String(10), nullable=False)
    due_time = Column(String(8), nullable=False, default="")
    status = Column(String(16), nullable=False, default=FOLLOW_UP_SCHEDULED)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    lead = relationship("Lead", back_populates="follow_ups")
