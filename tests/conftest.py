import pytest

from travel_tracker import create_app
from travel_tracker.storage import travel_store


@pytest.fixture(autouse=True)
def clean_store():
    travel_store.clear()
    yield
    travel_store.clear()


@pytest.fixture
def app():
    return create_app({"TESTING": True, "TRAVEL_RATE_PER_KM": 3.0, "TRAVEL_USER_HEADER": "X-User-Id"})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "exec-1"}
