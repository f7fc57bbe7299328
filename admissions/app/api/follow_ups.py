"""Follow-up reminders scheduled for a lead's meeting and visit."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from admissions.app.db.session import get_db
from admissions.app.models.follow_up import FOLLOW_UP_SCHEDULED, FollowUp
from admissions.app.models.lead import Lead
from admissions.app.schemas.follow_up import FollowUpRead

router = APIRouter(prefix="/leads", tags=["follow-ups"])


@router.get("/{lead_id}/follow-ups", response_model=list[FollowUpRead])
async def list_follow_ups(lead_id: int, include_cancelled: bool = False, db: Session = Depends(get_db)):
    if not db.query(Lead).filter(Lead.id == lead_id).first():
        raise HTTPException(status_code=404, detail="Lead not found")
    query = db.query(FollowUp).filter(FollowUp.lead_id == lead_id)
    if not include_cancelled:
        query = query.filter(FollowUp.status == FOLLOW_UP_SCHEDULED)
    return query.order_by(FollowUp.due_date.asc(), FollowUp.due_time.asc(), FollowUp.id.asc()).all()
