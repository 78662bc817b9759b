"""API test fixtures — FastAPI test client over the in-memory database and a live hub.

Invariants:
    - get_db dependency overridden to use the test session factory
    - db_manager and pubsub_hub singletons patched, then restored
"""

import pytest
from httpx import ASGITransport, AsyncClient

import resource_links.infrastructure.database as db_module
import resource_links.infrastructure.pubsub as pubsub_module
from resource_links.infrastructure.database import DatabaseSessionManager, get_db
from resource_links.infrastructure.pubsub import PubSubHub
from resource_links.main import app


@pytest.fixture
def hub():
    return PubSubHub(queue_size=10)


@pytest.fixture
async def client(test_engine, test_session_factory, hub):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    # Readiness probe uses db_manager directly
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    original_hub = pubsub_module.pubsub_hub
    pubsub_module.pubsub_hub = hub

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    pubsub_module.pubsub_hub = original_hub
