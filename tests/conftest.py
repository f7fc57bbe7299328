import pytest

from admissions.app.dependencies.pipeline import get_notifier, get_scheduler
from admissions.app.main import app
from admissions.app.services.notifier import NotificationResult
from admissions.app.services.scheduler import SchedulerError


class FakeNotifier:
    def __init__(self, success: bool = True, error: str | None = None):
        self.success = success
        self.error = error
        self.calls = []

    async def send(self, template, destination, params, user_name=None):
        self.calls.append({"template": template, "destination": destination, "params": list(params), "user_name": user_name})
        return NotificationResult(success=self.success, error=self.error)


class FailingScheduler:
    async def schedule(self, lead_id, phone, name, date, time, kind):
        raise SchedulerError("scheduling service down")

    async def cancel(self, lead_id, kind):
        raise SchedulerError("scheduling service down")


@pytest.fixture
def notifier():
    fake = FakeNotifier()
    app.dependency_overrides[get_notifier] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def failing_notifier():
    fake = FakeNotifier(success=False, error="notifier_api_error:500")
    app.dependency_overrides[get_notifier] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def failing_scheduler():
    fake = FailingScheduler()
    app.dependency_overrides[get_scheduler] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_scheduler, None)
