import pytest

from admissions.app.services.configuration import ConfigurationSnapshot, Stage
from admissions.app.services.stage_keys import display_name, resolve_display, resolve_key


@pytest.fixture
def snapshot():
    return ConfigurationSnapshot(
        stages=[
            Stage(id=1, name="New Lead", stage_key="new_lead", score=20, category="New", color="#B3D7FF"),
            Stage(id=2, name="Connected", stage_key="connected", score=40, category="Warm", color="#FFE08A"),
            Stage(id=3, name="Visit Scheduled", stage_key="Visit Scheduled", score=60, category="Hot"),
        ]
    )


def test_resolve_key_maps_name_to_key(snapshot):
    assert resolve_key("Connected", snapshot) == "connected"


def test_resolve_key_keeps_known_key(snapshot):
    assert resolve_key("connected", snapshot) == "connected"


def test_resolve_key_passes_unknown_value_through(snapshot):
    assert resolve_key("Typo Stage", snapshot) == "Typo Stage"


def test_stage_without_key_resolves_to_its_name(snapshot):
    assert resolve_key("Visit Scheduled", snapshot) == "Visit Scheduled"


@pytest.mark.parametrize("value", ["New Lead", "new_lead", "connected", "Connected", "Typo Stage", ""])
def test_resolve_key_is_idempotent(snapshot, value):
    once = resolve_key(value, snapshot)
    assert resolve_key(once, snapshot) == once


def test_resolve_display_by_key_or_name(snapshot):
    by_key = resolve_display("connected", snapshot)
    by_name = resolve_display("Connected", snapshot)
    assert by_key == by_name
    assert (by_key.name, by_key.score, by_key.category, by_key.color) == ("Connected", 40, "Warm", "#FFE08A")


def test_resolve_display_defaults_for_unknown_stage(snapshot):
    display = resolve_display("gone", snapshot)
    assert (display.name, display.score, display.category, display.color) == ("gone", 20, "New", "#B3D7FF")
    assert display_name("new_lead", snapshot) == "New Lead"
