"""Lead model for the admissions pipeline."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from admissions.app.db.base_class import Base
from admissions.app.core.time import utc_now

STATUS_SENT = "SENT"
STATUS_EMPTY = ""


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    parents_name = Column(String, nullable=False)
    kids_name = Column(String, nullable=False)
    phone = Column(String(20), nullable=False, default="", index=True)
    second_phone = Column(String(20), nullable=False, default="")
    email = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")
    grade = Column(String, nullable=False, default="")
    # Always a stage key, never a display name
    stage = Column(String, nullable=False, default="")
    previous_stage = Column(String, nullable=True)
    score = Column(Integer, nullable=False, default=20)
    category = Column(String, nullable=False, default="New")
    counsellor = Column(String, nullable=False, default="")
    offer = Column(String, nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
    source = Column(String, nullable=False, default="")
    occupation = Column(String, nullable=False, default="")
    current_school = Column(String, nullable=False, default="")

    meeting_date = Column(String(10), nullable=False, default="")
    meeting_time = Column(String(8), nullable=False, default="")
    meeting_link = Column(String, nullable=False, default="")
    visit_date = Column(String(10), nullable=False, default="")
    visit_time = Column(String(8), nullable=False, default="")
    visit_location = Column(String, nullable=False, default="")
    registration_fees = Column(String, nullable=False, default="")
    enrolled = Column(String, nullable=False, default="")

    stage2_status = Column(String(8), nullable=False, default=STATUS_EMPTY)
    stage4_status = Column(String(8), nullable=False, default=STATUS_EMPTY)
    stage5_status = Column(String(8), nullable=False, default=STATUS_EMPTY)
    stage7_status = Column(String(8), nullable=False, default=STATUS_EMPTY)
    stage8_status = Column(String(8), nullable=False, default=STATUS_EMPTY)
    stage9_status = Column(String(8), nullable=False, default=STATUS_EMPTY)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    follow_ups = relationship("FollowUp", back_populates="lead", cascade="all, delete-orphan")
    custom_fields = relationship("LeadCustomFieldValue", back_populates="lead", cascade="all, delete-orphan")
