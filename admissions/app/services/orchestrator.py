"""Lead write pipeline and the side effects that follow a write.

The primary lead write is committed first and decides success on its own.
Notifications, reminder scheduling and history entries are dispatched
afterwards as independent tasks, each under a timeout; a failing side effect
is logged and reported as a ``SideEffectOutcome`` without touching the write
or its siblings.

Per lead, each of stages 2, 4, 5, 7, 8 and 9 has a notification cell that
is either empty or ``SENT``. A cell becomes ``SENT`` only when an operator
triggers that stage's action and the message goes out, and is only reset by
``clear_expired_statuses`` when the meeting or visit it announced has passed
unconfirmed.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping

from sqlalchemy import or_
from sqlalchemy.orm import Session

from admissions.app.core.errors import (
    LeadNotFound,
    LeadValidationError,
    MissingStageParameters,
    SideEffectOutcome,
    StageAlreadySent,
    UnknownStageAction,
)
from admissions.app.core.time import format_schedule, parse_schedule, utc_now
from admissions.app.models.lead import STATUS_EMPTY, STATUS_SENT, Lead
from admissions.app.models.lead_custom_field import LeadCustomFieldValue
from admissions.app.services import audit
from admissions.app.services.audit import AuditLogger, describe_changes
from admissions.app.services.configuration import ConfigurationSnapshot
from admissions.app.services.lead_conversion import (
    STORAGE_TO_EXTERNAL,
    custom_field_values,
    previous_stage_change,
    to_storage,
    to_storage_patch,
)
from admissions.app.services.lead_validation import validate, validate_update
from admissions.app.services.notifier import Notifier
from admissions.app.services.scheduler import MEETING, VISIT, Scheduler
from admissions.app.services.stage_actions import STAGE_ACTIONS, WELCOME_ACTION, StageAction, missing_parameters
from admissions.app.services.stage_keys import display_name

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    pass


class HistoryWriteFailed(Exception):
    pass


@dataclass
class PipelineContext:
    """Everything one request's pipeline run needs; built fresh per request."""

    db: Session
    snapshot: ConfigurationSnapshot
    notifier: Notifier
    scheduler: Scheduler
    audit: AuditLogger
    clock: Callable[[], datetime] = utc_now
    timeout: float = 10.0
    country_code: str = "+91"
    send_welcome_message: bool = False


@dataclass(frozen=True)
class ScheduleFields:
    kind: str
    date_column: str
    time_column: str
    history_action: str


SCHEDULES = (
    ScheduleFields(MEETING, "meeting_date", "meeting_time", audit.MEETING_SCHEDULED),
    ScheduleFields(VISIT, "visit_date", "visit_time", audit.VISIT_SCHEDULED),
)


@dataclass(frozen=True)
class ClearingRule:
    status_field: str
    confirmation_field: str
    date_column: str
    time_column: str


CLEARING_RULES = (
    ClearingRule("stage2_status", "stage4_status", "meeting_date", "meeting_time"),
    ClearingRule("stage5_status", "stage7_status", "visit_date", "visit_time"),
)


def _action_values(lead: Lead) -> dict[str, str]:
    return {external: getattr(lead, column, "") or "" for column, external in STORAGE_TO_EXTERNAL.items()}


class StageTransitionOrchestrator:
    def __init__(self, context: PipelineContext):
        self.ctx = context

    @property
    def db(self) -> Session:
        return self.ctx.db

    def get_lead(self, lead_id: int) -> Lead:
        lead = self.db.query(Lead).filter(Lead.id == lead_id).first()
        if not lead:
            raise LeadNotFound(lead_id)
        return lead

    # Side-effect plumbing

    async def _run(self, name: str, lead_id: int, awaitable: Awaitable[Any]) -> SideEffectOutcome:
        try:
            await asyncio.wait_for(awaitable, timeout=self.ctx.timeout)
        except asyncio.TimeoutError:
            logger.warning("Side effect %s timed out for lead %s", name, lead_id)
            return SideEffectOutcome(name=name, ok=False, error="timeout")
        except Exception as exc:  # any collaborator failure is non-fatal here
            logger.warning("Side effect %s failed for lead %s: %s", name, lead_id, exc)
            return SideEffectOutcome(name=name, ok=False, error=str(exc) or exc.__class__.__name__)
        return SideEffectOutcome(name=name, ok=True)

    async def _dispatch(self, lead_id: int, effects: list[tuple[str, Awaitable[Any]]]) -> list[SideEffectOutcome]:
        if not effects:
            return []
        results = await asyncio.gather(*(self._run(name, lead_id, awaitable) for name, awaitable in effects))
        return list(results)

    async def _history(self, lead_id: int, action: str, details: str, context: dict[str, Any]) -> None:
        if self.ctx.audit.record(lead_id, action, details, context) is None:
            raise HistoryWriteFailed(f"history entry {action!r} not written")

    async def _notify(self, action: StageAction, values: Mapping[str, str]) -> None:
        user_name = values.get(action.user_name_field) if action.user_name_field else None
        result = await self.ctx.notifier.send(
            action.template,
            values.get("phone", ""),
            action.template_params(values),
            user_name=user_name or None,
        )
        if not result.success:
            raise NotificationFailed(result.error or "notification not accepted")

    def _schedule_effects(self, lead: Lead, changed_columns: set[str]) -> list[tuple[str, Awaitable[Any]]]:
        effects = []
        for fields in SCHEDULES:
            if not changed_columns & {fields.date_column, fields.time_column}:
                continue
            date_value = getattr(lead, fields.date_column)
            time_value = getattr(lead, fields.time_column)
            if date_value:
                effects.append(
                    (
                        f"schedule:{fields.kind}",
                        self.ctx.scheduler.schedule(
                            lead.id, lead.phone, lead.parents_name, date_value, time_value, fields.kind
                        ),
                    )
                )
            else:
                effects.append((f"cancel:{fields.kind}", self.ctx.scheduler.cancel(lead.id, fields.kind)))
            if date_value and time_value:
                details = f"{fields.kind.capitalize()} scheduled for {format_schedule(date_value, time_value)}"
                effects.append(
                    (
                        f"history:{fields.kind}",
                        self._history(
                            lead.id,
                            fields.history_action,
                            details,
                            {"date": date_value, "time": time_value},
                        ),
                    )
                )
        return effects

    def _created_history(self, lead: Lead, mechanism: str) -> Awaitable[None]:
        details = f"New lead created via {mechanism} - {lead.parents_name} ({lead.kids_name}) - {lead.phone}"
        return self._history(
            lead.id,
            audit.LEAD_CREATED,
            details,
            {
                "created_via": mechanism,
                "stage": display_name(lead.stage, self.ctx.snapshot),
                "grade": lead.grade,
                "counsellor": lead.counsellor,
                "source": lead.source,
            },
        )

    # Operations

    async def create_lead(self, payload: Mapping[str, Any], mechanism: str = "API") -> tuple[Lead, list[SideEffectOutcome]]:
        snapshot = self.ctx.snapshot
        errors = validate(payload, snapshot)
        if errors:
            raise LeadValidationError(errors)

        record = to_storage(payload, snapshot, now=self.ctx.clock(), country_code=self.ctx.country_code)
        lead = Lead(**record)
        for field_key, value in custom_field_values(payload, snapshot):
            lead.custom_fields.append(LeadCustomFieldValue(field_key=field_key, value=value))
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)

        effects: list[tuple[str, Awaitable[Any]]] = [("history", self._created_history(lead, mechanism))]
        if self.ctx.send_welcome_message:
            effects.append(("notification:stage1", self._notify(WELCOME_ACTION, _action_values(lead))))
        effects.extend(self._schedule_effects(lead, {f.date_column for f in SCHEDULES if getattr(lead, f.date_column)}))
        outcomes = await self._dispatch(lead.id, effects)
        return lead, outcomes

    async def import_leads(self, rows: list[Mapping[str, Any]], mechanism: str = "Import") -> dict[str, Any]:
        """Insert a batch of leads, skipping invalid rows and known phone numbers.

        Rows are numbered from 1. A phone already stored, or already taken by
        an earlier row of the same batch, is reported as a duplicate. Imported
        leads get their creation history entry but no welcome message and no
        reminders.
        """
        snapshot = self.ctx.snapshot
        now = self.ctx.clock()
        known_phones = {phone for (phone,) in self.db.query(Lead.phone).all() if phone}
        errors: list[dict[str, Any]] = []
        duplicates = 0
        leads: list[Lead] = []

        for row_number, row in enumerate(rows, start=1):
            row_errors = validate(row, snapshot)
            if row_errors:
                errors.append({"row": row_number, "error": "Validation failed", "details": row_errors})
                continue
            record = to_storage(row, snapshot, now=now, country_code=self.ctx.country_code)
            if record["phone"] in known_phones:
                duplicates += 1
                errors.append({"row": row_number, "phone": record["phone"], "error": "Duplicate phone number"})
                continue
            known_phones.add(record["phone"])
            lead = Lead(**record)
            for field_key, value in custom_field_values(row, snapshot):
                lead.custom_fields.append(LeadCustomFieldValue(field_key=field_key, value=value))
            leads.append(lead)

        if leads:
            self.db.add_all(leads)
            self.db.commit()
            for lead in leads:
                self.db.refresh(lead)

        outcomes = await asyncio.gather(
            *(self._run("history", lead.id, self._created_history(lead, mechanism)) for lead in leads)
        )
        logger.info("Imported %s of %s leads (%s duplicates)", len(leads), len(rows), duplicates)
        return {
            "totalRows": len(rows),
            "inserted": len(leads),
            "duplicates": duplicates,
            "errors": errors,
            "leadIds": [lead.id for lead in leads],
            "side_effects": [outcome for outcome in outcomes if not outcome.ok],
        }

    async def update_lead(
        self,
        lead_id: int,
        patch: Mapping[str, Any],
        actor: str | None = None,
        mechanism: str = "API",
    ) -> tuple[Lead, list[SideEffectOutcome]]:
        snapshot = self.ctx.snapshot
        lead = self.get_lead(lead_id)
        errors = validate_update(patch, snapshot)
        if errors:
            raise LeadValidationError(errors)

        changes = to_storage_patch(patch, snapshot, now=self.ctx.clock(), country_code=self.ctx.country_code)
        if "stage" in changes:
            changes.update(previous_stage_change(lead.stage, changes["stage"], snapshot))

        diff: dict[str, tuple[Any, Any]] = {}
        for column, new in changes.items():
            if column == "updated_at":
                continue
            old = getattr(lead, column)
            if old != new:
                diff[column] = (old, new)

        existing_custom = {row.field_key: row for row in lead.custom_fields}
        custom_diff: dict[str, tuple[Any, Any]] = {}
        for field_key, value in custom_field_values(patch, snapshot):
            row = existing_custom.get(field_key)
            old = row.value if row else ""
            if old == value:
                continue
            custom_diff[f"customFields.{field_key}"] = (old, value)
            if row:
                row.value = value
            else:
                lead.custom_fields.append(LeadCustomFieldValue(field_key=field_key, value=value))

        if not diff and not custom_diff:
            return lead, []

        for column in diff:
            setattr(lead, column, changes[column])
        lead.updated_at = changes.get("updated_at") or self.ctx.clock()
        self.db.commit()
        self.db.refresh(lead)

        effects: list[tuple[str, Awaitable[Any]]] = []
        if "stage" in diff:
            old_name = display_name(diff["stage"][0], snapshot)
            new_name = display_name(diff["stage"][1], snapshot)
            effects.append(
                (
                    "history:stage",
                    self._history(
                        lead.id,
                        audit.STAGE_UPDATED,
                        f'Stage changed from "{old_name}" to "{new_name}" via {mechanism}',
                        {"oldStage": old_name, "newStage": new_name, "source": mechanism, "actor": actor},
                    ),
                )
            )
        effects.extend(self._schedule_effects(lead, set(diff)))

        described: dict[str, tuple[Any, Any]] = {}
        for column, (old, new) in diff.items():
            external = STORAGE_TO_EXTERNAL.get(column)
            if external is None:
                continue
            if external == "stage":
                old, new = display_name(old, snapshot), display_name(new, snapshot)
            described[external] = (old, new)
        described.update(custom_diff)
        summary = f"Updated via {mechanism}: {describe_changes(described)}"
        effects.append(
            (
                "history",
                self._history(
                    lead.id,
                    audit.LEAD_UPDATED,
                    summary,
                    {
                        "changes": {k: {"oldValue": o, "newValue": n} for k, (o, n) in described.items()},
                        "actor": actor,
                        "mechanism": mechanism,
                    },
                ),
            )
        )
        outcomes = await self._dispatch(lead.id, effects)
        return lead, outcomes

    async def trigger_stage_action(self, lead_id: int, stage: int, actor: str | None = None) -> tuple[Lead, list[SideEffectOutcome]]:
        action = STAGE_ACTIONS.get(stage)
        if action is None:
            raise UnknownStageAction(stage)
        lead = self.get_lead(lead_id)
        if getattr(lead, action.status_field) == STATUS_SENT:
            raise StageAlreadySent(stage)

        values = _action_values(lead)
        missing = missing_parameters(action, values, self.ctx.snapshot)
        if missing:
            raise MissingStageParameters(stage, missing)

        sent = await self._run(f"notification:stage{stage}", lead.id, self._notify(action, values))
        if not sent.ok:
            return lead, [sent]

        setattr(lead, action.status_field, STATUS_SENT)
        lead.updated_at = self.ctx.clock()
        self.db.commit()
        self.db.refresh(lead)

        history = await self._run(
            "history",
            lead.id,
            self._history(
                lead.id,
                audit.MESSAGE_SENT,
                f"WhatsApp message sent for {action.name}",
                {"stageField": action.status_field, "template": action.template, "actor": actor},
            ),
        )
        return lead, [sent, history]

    def clear_expired_statuses(self) -> list[dict[str, Any]]:
        """Reset sent cells whose meeting or visit passed without being confirmed."""
        now = self.ctx.clock()
        candidates = (
            self.db.query(Lead)
            .filter(or_(*(getattr(Lead, rule.status_field) == STATUS_SENT for rule in CLEARING_RULES)))
            .all()
        )
        cleared: list[tuple[Lead, ClearingRule]] = []
        for lead in candidates:
            for rule in CLEARING_RULES:
                if getattr(lead, rule.status_field) != STATUS_SENT:
                    continue
                if getattr(lead, rule.confirmation_field) == STATUS_SENT:
                    continue
                due = parse_schedule(getattr(lead, rule.date_column), getattr(lead, rule.time_column))
                if due is None or due > now:
                    continue
                setattr(lead, rule.status_field, STATUS_EMPTY)
                cleared.append((lead, rule))
        if not cleared:
            return []
        self.db.commit()

        report = []
        for lead, rule in cleared:
            self.ctx.audit.record(
                lead.id,
                audit.STATUS_CLEARED,
                f"{rule.status_field} cleared: scheduled time passed without confirmation",
                {"statusField": rule.status_field, "confirmationField": rule.confirmation_field},
            )
            report.append({"leadId": lead.id, "statusField": rule.status_field})
        return report
