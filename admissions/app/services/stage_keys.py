"""Map stage display names to stable stage keys and back.

Every consumer of stage values accepts either form: a key is looked up first,
then a display name. Unknown values pass through unchanged.
"""

from dataclasses import dataclass

from admissions.app.services.configuration import (
    DEFAULT_STAGE_CATEGORY,
    DEFAULT_STAGE_COLOR,
    DEFAULT_STAGE_SCORE,
    ConfigurationSnapshot,
    Stage,
)


@dataclass(frozen=True)
class StageDisplay:
    name: str
    score: int = DEFAULT_STAGE_SCORE
    category: str = DEFAULT_STAGE_CATEGORY
    color: str = DEFAULT_STAGE_COLOR


def find_stage(value: str | None, snapshot: ConfigurationSnapshot) -> Stage | None:
    if not value:
        return None
    for stage in snapshot.stages:
        if stage.stage_key == value:
            return stage
    for stage in snapshot.stages:
        if stage.name == value:
            return stage
    return None


def resolve_key(value: str | None, snapshot: ConfigurationSnapshot) -> str:
    """Return the stage key for a name or key; unknown input comes back as-is."""
    if not value:
        return value or ""
    if any(stage.stage_key == value for stage in snapshot.stages):
        return value
    for stage in snapshot.stages:
        if stage.name == value:
            return stage.stage_key
    return value


def resolve_display(stage_key: str | None, snapshot: ConfigurationSnapshot) -> StageDisplay:
    stage = find_stage(stage_key, snapshot)
    if stage is None:
        return StageDisplay(name=stage_key or "")
    return StageDisplay(name=stage.name, score=stage.score, category=stage.category, color=stage.color)


def display_name(value: str | None, snapshot: ConfigurationSnapshot) -> str:
    return resolve_display(value, snapshot).name
