"""Reminder scheduling for lead meetings and visits.

``FollowUpScheduler`` keeps reminders as ``follow_ups`` rows in the record
store; ``HttpScheduler`` hands them to an external scheduling service. Both
raise on failure and leave retry decisions to the caller.
"""

import logging
from typing import Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.app.core.time import utc_now
from admissions.app.models.follow_up import FOLLOW_UP_CANCELLED, FOLLOW_UP_SCHEDULED, FollowUp

logger = logging.getLogger(__name__)

MEETING = "meeting"
VISIT = "visit"


class SchedulerError(Exception):
    pass


class Scheduler(Protocol):
    async def schedule(self, lead_id: int, phone: str, name: str, date: str, time: str, kind: str) -> None: ...

    async def cancel(self, lead_id: int, kind: str) -> None: ...


class FollowUpScheduler:
    def __init__(self, db: Session):
        self.db = db

    def _cancel_pending(self, lead_id: int, kind: str) -> int:
        pending = (
            self.db.query(FollowUp)
            .filter(FollowUp.lead_id == lead_id, FollowUp.kind == kind, FollowUp.status == FOLLOW_UP_SCHEDULED)
            .all()
        )
        now = utc_now()
        for follow_up in pending:
            follow_up.status = FOLLOW_UP_CANCELLED
            follow_up.cancelled_at = now
        return len(pending)

    async def schedule(self, lead_id: int, phone: str, name: str, date: str, time: str, kind: str) -> None:
        # Replace semantics: one live reminder per lead and kind
        try:
            self._cancel_pending(lead_id, kind)
            self.db.add(
                FollowUp(lead_id=lead_id, kind=kind, phone=phone, name=name, due_date=date, due_time=time or "")
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SchedulerError(f"Could not schedule {kind} reminder for lead {lead_id}") from exc

    async def cancel(self, lead_id: int, kind: str) -> None:
        try:
            cancelled = self._cancel_pending(lead_id, kind)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SchedulerError(f"Could not cancel {kind} reminder for lead {lead_id}") from exc
        logger.debug("Cancelled %s %s reminder(s) for lead %s", cancelled, kind, lead_id)


class HttpScheduler:
    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def schedule(self, lead_id: int, phone: str, name: str, date: str, time: str, kind: str) -> None:
        body = {"leadId": lead_id, "phone": phone, "name": name, "date": date, "time": time, "kind": kind}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/reminders", json=body)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SchedulerError(f"Scheduling service failed for lead {lead_id}: {exc}") from exc

    async def cancel(self, lead_id: int, kind: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.delete(f"{self.base_url}/reminders/{lead_id}/{kind}")
                if resp.status_code != 404:
                    resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SchedulerError(f"Scheduling service cancel failed for lead {lead_id}: {exc}") from exc
