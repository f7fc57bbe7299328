import asyncio

from admissions.app.services.notifier import HttpNotifier


def test_stub_mode_without_url():
    notifier = HttpNotifier(url="", api_key="")
    result = asyncio.run(notifier.send("welcome-school", "+919876543210", ["Anil", "Meera", "LKG"], user_name="Anil"))
    assert result.success is True
    assert result.raw_response["stub"] is True


def test_unreachable_provider_returns_failure():
    notifier = HttpNotifier(url="http://127.0.0.1:9/send", api_key="key", timeout=1.0)
    result = asyncio.run(notifier.send("enrolled10", "+919876543210", ["Meera"]))
    assert result.success is False
    assert result.error.startswith("notifier_unreachable:")
