"""
Shared fixtures: every test starts from a fresh container, configuration
and search engine, so state never leaks between tests.
"""

import pytest
import pytest_asyncio
from starlette.testclient import TestClient

from twentyonepoints.application import create_app
from twentyonepoints.config.properties import ConfigurationProperties, set_config
from twentyonepoints.core.container import DIContainer, set_container
from twentyonepoints.data import SQLAlchemyAdapter, set_database_adapter
from twentyonepoints.search import SearchEngine, set_search_engine

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def reset_state():
    set_container(DIContainer())
    set_search_engine(SearchEngine())
    set_config(None)
    yield
    set_container(DIContainer())
    set_search_engine(None)
    set_database_adapter(None)
    set_config(None)


@pytest_asyncio.fixture
async def database():
    """In-memory SQLite with every entity's table created."""
    adapter = SQLAlchemyAdapter()
    await adapter.connect(TEST_DATABASE_URL)
    await adapter.create_tables()
    set_database_adapter(adapter)

    yield adapter

    await adapter.drop_tables()
    await adapter.disconnect()
    set_database_adapter(None)


def make_config(**overrides) -> ConfigurationProperties:
    values = {
        "database.url": TEST_DATABASE_URL,
        "logging.level": "WARNING",
        "logging.colored": False,
    }
    values.update(overrides)
    return ConfigurationProperties(overrides=values)


@pytest.fixture
def app_factory():
    """Build an application over the test configuration plus overrides."""

    def factory(**overrides):
        return create_app(make_config(**overrides))

    return factory


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app):
    """TestClient with the lifespan running, so the database is up."""
    with TestClient(app) as test_client:
        yield test_client
