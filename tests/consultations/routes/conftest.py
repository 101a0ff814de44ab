import pytest
from fastapi.testclient import TestClient

from consultations.core.clients import BridgeContainer, get_bridges
from consultations.database import get_db
from consultations.main import app


@pytest.fixture
def client(db_session, payments, video, notifier):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_bridges] = lambda: BridgeContainer(payments=payments, video=video, notifier=notifier)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
