import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.services.db.engine import EmbeddedDriver
from app.services.db.init_db import init_schema
from app.services.ratings import RatingRepository


@pytest.fixture
def storage():
    """Fresh in-memory sqlite driver per test."""
    driver = EmbeddedDriver(":memory:")
    yield driver
    driver.engine.dispose()


@pytest.fixture
async def repository(storage):
    await init_schema(storage)
    return RatingRepository(storage)


@pytest.fixture
def client(storage):
    """HTTP client for an app wired to the in-memory driver."""
    with TestClient(create_app(storage=storage)) as test_client:
        yield test_client
