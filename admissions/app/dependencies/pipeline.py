"""Request-scoped collaborators for the lead pipeline.

Tests swap the notifier and scheduler through ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from admissions.app.core.settings import get_settings
from admissions.app.db.session import get_db
from admissions.app.services.audit import AuditLogger
from admissions.app.services.configuration import ConfigurationSnapshot, load_snapshot
from admissions.app.services.notifier import HttpNotifier, Notifier
from admissions.app.services.orchestrator import PipelineContext, StageTransitionOrchestrator
from admissions.app.services.scheduler import FollowUpScheduler, HttpScheduler, Scheduler


def get_snapshot(db: Session = Depends(get_db)) -> ConfigurationSnapshot:
    return load_snapshot(db)


def get_notifier() -> Notifier:
    settings = get_settings()
    return HttpNotifier(settings.notifier_url, settings.notifier_api_key, timeout=settings.side_effect_timeout_seconds)


def get_scheduler(db: Session = Depends(get_db)) -> Scheduler:
    settings = get_settings()
    if settings.scheduler_url:
        return HttpScheduler(settings.scheduler_url, timeout=settings.side_effect_timeout_seconds)
    return FollowUpScheduler(db)


def get_audit_logger(db: Session = Depends(get_db)) -> AuditLogger:
    return AuditLogger(db)


def get_orchestrator(
    db: Session = Depends(get_db),
    snapshot: ConfigurationSnapshot = Depends(get_snapshot),
    notifier: Notifier = Depends(get_notifier),
    scheduler: Scheduler = Depends(get_scheduler),
    audit: AuditLogger = Depends(get_audit_logger),
) -> StageTransitionOrchestrator:
    settings = get_settings()
    context = PipelineContext(
        db=db,
        snapshot=snapshot,
        notifier=notifier,
        scheduler=scheduler,
        audit=audit,
        timeout=settings.side_effect_timeout_seconds,
        country_code=settings.country_code,
        send_welcome_message=settings.send_welcome_message,
    )
    return StageTransitionOrchestrator(context)
