"""Lead management endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from admissions.app.core.settings import get_settings
from admissions.app.db.session import get_db
from admissions.app.dependencies.pipeline import get_audit_logger, get_orchestrator, get_snapshot
from admissions.app.models.lead import Lead
from admissions.app.schemas.history import HistoryEntryCreate, HistoryEntryRead
from admissions.app.schemas.lead import (
    ClearExpiredResponse,
    LeadImportRequest,
    LeadImportResponse,
    LeadMutationResponse,
    LeadPayload,
    LeadRead,
)
from admissions.app.services.audit import AuditLogger
from admissions.app.services.configuration import ConfigurationSnapshot
from admissions.app.services.lead_conversion import to_external
from admissions.app.services.lead_options import build_options
from admissions.app.services.orchestrator import StageTransitionOrchestrator
from admissions.app.services.stage_keys import resolve_key

router = APIRouter(prefix="/leads", tags=["leads"])


def _get_lead(db: Session, lead_id: int) -> Lead:
    lead = db.query(Lead).filter(Lead.id == lead_id).first()
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


def _external(lead: Lead, snapshot: ConfigurationSnapshot) -> dict:
    return to_external(lead, snapshot, get_settings().country_code)


def _mutation(message: str, lead: Lead, snapshot: ConfigurationSnapshot, outcomes, success: bool = True) -> dict:
    return {
        "success": success,
        "message": message,
        "data": _external(lead, snapshot),
        "side_effects": [o.as_dict() for o in outcomes],
    }


@router.get("/options")
async def get_lead_options(snapshot: ConfigurationSnapshot = Depends(get_snapshot)):
    return {"success": True, "message": "Field options retrieved successfully", "data": build_options(snapshot)}


@router.post("", response_model=LeadMutationResponse, status_code=201)
async def create_lead(
    lead_in: LeadPayload,
    via: str = "API",
    orchestrator: StageTransitionOrchestrator = Depends(get_orchestrator),
):
    lead, outcomes = await orchestrator.create_lead(lead_in.model_dump(), mechanism=via)
    return _mutation("Lead created successfully", lead, orchestrator.ctx.snapshot, outcomes)


@router.post("/import", response_model=LeadImportResponse)
async def import_leads(
    import_in: LeadImportRequest,
    orchestrator: StageTransitionOrchestrator = Depends(get_orchestrator),
):
    report = await orchestrator.import_leads([row.model_dump() for row in import_in.leads])
    report["side_effects"] = [o.as_dict() for o in report["side_effects"]]
    return {"success": True, **report}


@router.get("", response_model=list[LeadRead])
async def list_leads(
    stage: str | None = None,
    counsellor: str | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    snapshot: ConfigurationSnapshot = Depends(get_snapshot),
):
    query = db.query(Lead)
    if stage:
        query = query.filter(Lead.stage == resolve_key(stage, snapshot))
    if counsellor:
        query = query.filter(Lead.counsellor == counsellor)
    if search:
        for token in [t for t in search.split() if t]:
            pattern = f"%{token}%"
            query = query.filter(
                or_(
                    Lead.parents_name.ilike(pattern),
                    Lead.kids_name.ilike(pattern),
                    Lead.phone.ilike(pattern),
                    Lead.email.ilike(pattern),
                )
            )
    leads = query.order_by(Lead.created_at.desc(), Lead.id.desc()).offset(max(skip, 0)).limit(min(max(limit, 1), 200)).all()
    return [_external(lead, snapshot) for lead in leads]


@router.post("/statuses/clear-expired", response_model=ClearExpiredResponse)
async def clear_expired_statuses(orchestrator: StageTransitionOrchestrator = Depends(get_orchestrator)):
    return {"success": True, "cleared": orchestrator.clear_expired_statuses()}


@router.get("/{lead_id}", response_model=LeadRead)
async def get_lead(
    lead_id: int,
    db: Session = Depends(get_db),
    snapshot: ConfigurationSnapshot = Depends(get_snapshot),
):
    return _external(_get_lead(db, lead_id), snapshot)


@router.put("/{lead_id}", response_model=LeadMutationResponse)
async def update_lead(
    lead_id: int,
    lead_in: LeadPayload,
    actor: str | None = None,
    via: str = "API",
    orchestrator: StageTransitionOrchestrator = Depends(get_orchestrator),
):
    _get_lead(orchestrator.db, lead_id)
    lead, outcomes = await orchestrator.update_lead(
        lead_id, lead_in.model_dump(exclude_unset=True), actor=actor, mechanism=via
    )
    return _mutation("Lead updated successfully", lead, orchestrator.ctx.snapshot, outcomes)


@router.post("/{lead_id}/stages/{stage}/send", response_model=LeadMutationResponse)
async def send_stage_message(
    lead_id: int,
    stage: int,
    actor: str | None = None,
    orchestrator: StageTransitionOrchestrator = Depends(get_orchestrator),
):
    _get_lead(orchestrator.db, lead_id)
    lead, outcomes = await orchestrator.trigger_stage_action(lead_id, stage, actor=actor)
    sent = bool(outcomes) and outcomes[0].ok
    message = f"Stage {stage} message sent" if sent else f"Stage {stage} message could not be sent"
    return _mutation(message, lead, orchestrator.ctx.snapshot, outcomes, success=sent)


@router.get("/{lead_id}/history", response_model=list[HistoryEntryRead])
async def get_history(
    lead_id: int,
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    _get_lead(db, lead_id)
    return audit.history_for(lead_id)


@router.post("/{lead_id}/history", response_model=HistoryEntryRead, status_code=201)
async def add_history_entry(
    lead_id: int,
    entry_in: HistoryEntryCreate,
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
):
    _get_lead(db, lead_id)
    entry = audit.record(lead_id, entry_in.action, entry_in.details, entry_in.additional_info)
    if entry is None:
        raise HTTPException(status_code=500, detail="Could not write history entry")
    return entry
