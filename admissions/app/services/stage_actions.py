"""Per-stage notification templates and the lead fields each one needs."""

from dataclasses import dataclass
from typing import Mapping

from admissions.app.services.configuration import ConfigurationSnapshot

DEFAULT_PARAM_LABELS = {
    "parentsName": "Parent's Name",
    "kidsName": "Kid Name",
    "phone": "Phone Number",
    "grade": "Grade",
    "meetingDate": "Meeting Date",
    "meetingTime": "Meeting Time",
    "meetingLink": "Meeting Link",
    "visitDate": "Visit Date",
}


@dataclass(frozen=True)
class StageAction:
    stage: int
    name: str
    template: str
    params: tuple[str, ...]
    required: tuple[str, ...]
    status_field: str | None = None
    user_name_field: str | None = "parentsName"

    def template_params(self, values: Mapping[str, str]) -> list[str]:
        return [values.get(p, "") or "" for p in self.params]


WELCOME_ACTION = StageAction(
    stage=1,
    name="Stage 1 - New Lead",
    template="welcome-school",
    params=("parentsName", "kidsName", "grade"),
    required=("phone",),
)

STAGE_ACTIONS: dict[int, StageAction] = {
    2: StageAction(
        stage=2,
        name="Stage 2 - Connected",
        template="Meeting-agenda-1",
        params=("parentsName", "meetingDate", "meetingTime", "meetingLink"),
        required=("parentsName", "meetingDate", "meetingTime", "meetingLink", "phone"),
        status_field="stage2_status",
    ),
    4: StageAction(
        stage=4,
        name="Stage 4 - Meeting Done",
        template="meeting-done",
        params=("parentsName",),
        required=("parentsName", "phone"),
        status_field="stage4_status",
    ),
    5: StageAction(
        stage=5,
        name="Stage 5 - Proposal Sent",
        template="proposal-sent",
        params=("parentsName",),
        required=("parentsName", "phone"),
        status_field="stage5_status",
    ),
    7: StageAction(
        stage=7,
        name="Stage 7 - Visit Done",
        template="Visit-Done-s",
        params=("parentsName", "visitDate"),
        required=("parentsName", "phone", "visitDate"),
        status_field="stage7_status",
    ),
    8: StageAction(
        stage=8,
        name="Stage 8 - Registered",
        template="registered_paid",
        params=(),
        required=("phone",),
        status_field="stage8_status",
        user_name_field=None,
    ),
    9: StageAction(
        stage=9,
        name="Stage 9 - Enrolled",
        template="enrolled10",
        params=("kidsName",),
        required=("kidsName", "phone"),
        status_field="stage9_status",
        user_name_field=None,
    ),
}


def missing_parameters(action: StageAction, values: Mapping[str, str], snapshot: ConfigurationSnapshot) -> list[str]:
    """Labels of the required fields that are blank, in the order the action lists them."""
    missing = []
    for field_key in action.required:
        value = values.get(field_key)
        if value is None or not str(value).strip():
            missing.append(snapshot.field_label(field_key, DEFAULT_PARAM_LABELS.get(field_key, field_key)))
    return missing
