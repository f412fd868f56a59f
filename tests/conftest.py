import pytest

from app.settings import settings
from app.core.entitlement import entitlement
from app.store import attempt_repo


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    # No Redis in unit tests; process-wide state starts clean each test
    monkeypatch.setattr(settings, "METRICS_ENABLED", False)
    entitlement.reset()
    attempt_repo.clear()
    yield
    entitlement.reset()
    attempt_repo.clear()
