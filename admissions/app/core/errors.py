"""Error types raised by the lead pipeline."""

from dataclasses import dataclass


class ConfigUnavailable(Exception):
    """The configuration store could not be read."""


class LeadValidationError(Exception):
    def __init__(self, errors: dict[str, str]):
        super().__init__("Validation failed")
        self.errors = errors


class MissingStageParameters(Exception):
    """A stage action was refused because lead fields it needs are blank."""

    def __init__(self, stage: int, missing: list[str]):
        super().__init__(f"Stage {stage} is missing: {', '.join(missing)}")
        self.stage = stage
        self.missing = missing


class StageAlreadySent(Exception):
    def __init__(self, stage: int):
        super().__init__(f"Stage {stage} notification already sent")
        self.stage = stage


class UnknownStageAction(Exception):
    def __init__(self, stage: int):
        super().__init__(f"No action configured for stage {stage}")
        self.stage = stage


class LeadNotFound(Exception):
    def __init__(self, lead_id: int):
        super().__init__(f"Lead {lead_id} not found")
        self.lead_id = lead_id


@dataclass(frozen=True)
class SideEffectOutcome:
    """Result of one best-effort side effect dispatched after a primary write."""

    name: str
    ok: bool
    error: str | None = None

    def as_dict(self) -> dict:
        return {"name": self.name, "ok": self.ok, "error": self.error}
