from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from admissions.app.db.base_class import Base


class LeadCustomFieldValue(Base):
    __tablename__ = "lead_custom_fields"
    __table_args__ = (UniqueConstraint("lead_id", "field_key", name="uq_lead_custom_field"),)

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    field_key = Column(String, nullable=False)
    value = Column(Text, nullable=False, default="")

    lead = relationship("Lead", back_populates="custom_fields")
