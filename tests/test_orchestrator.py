import asyncio
from datetime import UTC, datetime

import pytest

from admissions.app.core.errors import LeadValidationError, MissingStageParameters
from admissions.app.db.base import Base
from admissions.app.db.session import SessionLocal, engine
from admissions.app.models.history_entry import HistoryEntry
from admissions.app.models.lead import STATUS_SENT, Lead
from admissions.app.services.audit import AuditLogger
from admissions.app.services.configuration import ConfigurationSnapshot
from admissions.app.services.notifier import NotificationResult
from admissions.app.services.orchestrator import PipelineContext, StageTransitionOrchestrator
from admissions.app.services.scheduler import SchedulerError

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


class CountingNotifier:
    def __init__(self):
        self.calls = 0

    async def send(self, template, destination, params, user_name=None):
        self.calls += 1
        return NotificationResult(success=True)


class RecordingScheduler:
    def __init__(self):
        self.scheduled = []
        self.cancelled = []

    async def schedule(self, lead_id, phone, name, date, time, kind):
        self.scheduled.append((lead_id, kind, date, time))

    async def cancel(self, lead_id, kind):
        self.cancelled.append((lead_id, kind))


class BrokenScheduler:
    async def schedule(self, lead_id, phone, name, date, time, kind):
        raise SchedulerError("scheduling service down")

    async def cancel(self, lead_id, kind):
        raise SchedulerError("scheduling service down")


class SlowScheduler:
    async def schedule(self, lead_id, phone, name, date, time, kind):
        await asyncio.sleep(5)

    async def cancel(self, lead_id, kind):
        await asyncio.sleep(5)


def make_orchestrator(db, scheduler=None, notifier=None, timeout=1.0):
    context = PipelineContext(
        db=db,
        snapshot=ConfigurationSnapshot(),
        notifier=notifier or CountingNotifier(),
        scheduler=scheduler or RecordingScheduler(),
        audit=AuditLogger(db),
        clock=lambda: NOW,
        timeout=timeout,
        country_code="+91",
    )
    return StageTransitionOrchestrator(context)


def new_lead(orchestrator, **extra) -> Lead:
    payload = {"parentsName": "Anil", "kidsName": "Meera", "phone": "9876543210", **extra}
    lead, _ = asyncio.run(orchestrator.create_lead(payload))
    return lead


def actions_for(db, lead_id):
    return [h.action for h in db.query(HistoryEntry).filter(HistoryEntry.record_id == lead_id).all()]


def test_invalid_payload_raises_before_write(db):
    orchestrator = make_orchestrator(db)
    with pytest.raises(LeadValidationError) as excinfo:
        asyncio.run(orchestrator.create_lead({"parentsName": "A"}))
    assert set(excinfo.value.errors) == {"kidsName", "phone"}
    assert db.query(Lead).count() == 0


def test_scheduler_failure_keeps_update_and_history(db):
    lead = new_lead(make_orchestrator(db))
    orchestrator = make_orchestrator(db, scheduler=BrokenScheduler())

    updated, outcomes = asyncio.run(
        orchestrator.update_lead(lead.id, {"meetingDate": "2025-06-10", "meetingTime": "11:00"}, actor="asha")
    )

    db.expire_all()
    stored = db.query(Lead).filter(Lead.id == lead.id).one()
    assert stored.meeting_date == "2025-06-10"
    assert stored.meeting_time == "11:00"
    by_name = {o.name: o for o in outcomes}
    assert by_name["schedule:meeting"].ok is False
    assert by_name["schedule:meeting"].error == "scheduling service down"
    assert by_name["history"].ok is True
    actions = actions_for(db, lead.id)
    assert "Lead Information Updated" in actions
    assert "Meeting Scheduled" in actions


def test_side_effect_timeout_reported(db):
    lead = new_lead(make_orchestrator(db))
    orchestrator = make_orchestrator(db, scheduler=SlowScheduler(), timeout=0.05)

    _, outcomes = asyncio.run(orchestrator.update_lead(lead.id, {"visitDate": "2025-06-12"}))

    by_name = {o.name: o for o in outcomes}
    assert by_name["schedule:visit"].ok is False
    assert by_name["schedule:visit"].error == "timeout"
    assert "Lead Information Updated" in actions_for(db, lead.id)


def test_schedule_and_cancel_follow_date_changes(db):
    scheduler = RecordingScheduler()
    orchestrator = make_orchestrator(db, scheduler=scheduler)
    lead = new_lead(orchestrator, visitDate="2025-06-12", visitTime="09:30")
    assert scheduler.scheduled == [(lead.id, "visit", "2025-06-12", "09:30")]

    asyncio.run(orchestrator.update_lead(lead.id, {"visitDate": ""}))
    assert scheduler.cancelled == [(lead.id, "visit")]


def test_missing_parameters_make_no_notifier_call(db):
    notifier = CountingNotifier()
    orchestrator = make_orchestrator(db, notifier=notifier)
    lead = new_lead(orchestrator, meetingDate="2025-06-10", meetingTime="11:00")

    with pytest.raises(MissingStageParameters) as excinfo:
        asyncio.run(orchestrator.trigger_stage_action(lead.id, 2))
    assert excinfo.value.missing == ["Meeting Link"]
    assert notifier.calls == 0


def test_clear_expired_statuses(db):
    orchestrator = make_orchestrator(db)
    past_meeting = new_lead(orchestrator, parentsName="Past", meetingDate="2025-05-30", meetingTime="10:00")
    confirmed = new_lead(orchestrator, parentsName="Confirmed", meetingDate="2025-05-30", meetingTime="10:00")
    upcoming = new_lead(orchestrator, parentsName="Upcoming", meetingDate="2025-06-01", meetingTime="18:00")
    past_visit = new_lead(orchestrator, parentsName="Visit", visitDate="2025-05-31")

    past_meeting.stage2_status = STATUS_SENT
    confirmed.stage2_status = STATUS_SENT
    confirmed.stage4_status = STATUS_SENT
    upcoming.stage2_status = STATUS_SENT
    past_visit.stage5_status = STATUS_SENT
    db.commit()

    cleared = orchestrator.clear_expired_statuses()

    assert sorted((c["leadId"], c["statusField"]) for c in cleared) == sorted(
        [(past_meeting.id, "stage2_status"), (past_visit.id, "stage5_status")]
    )
    db.expire_all()
    assert db.get(Lead, past_meeting.id).stage2_status == ""
    assert db.get(Lead, confirmed.id).stage2_status == STATUS_SENT
    assert db.get(Lead, upcoming.id).stage2_status == STATUS_SENT
    assert db.get(Lead, past_visit.id).stage5_status == ""
    assert "Stage Status Cleared" in actions_for(db, past_meeting.id)
    assert orchestrator.clear_expired_statuses() == []
