import pytest

from grc_api import store
from grc_api.core.travel_risk import AdvisoryClient
from grc_api.routes import webhooks as webhook_routes


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch):
    """Every test starts from freshly seeded stores, offline, with no webhook secret."""
    store.reset()
    store.advisory_client = AdvisoryClient(base_url="")
    monkeypatch.setattr(webhook_routes, "WEBHOOK_SECRET", "")
    yield
    store.reset()
