import os

# Configure the test environment before the app modules read settings
os.environ["ENV"] = "test"
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ["LOG_JSON"] = "false"
os.environ["SLACK_SIGNING_SECRET"] = "test-signing-secret"
os.environ["OPERATIONS_CHANNEL_ID"] = "C0OPS"
os.environ["OPERATING_TIMEZONE"] = "Europe/Belgrade"
os.environ.pop("SLACK_BOT_TOKEN", None)

from contextlib import contextmanager  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from shiftwatch import models  # noqa: E402,F401
from shiftwatch.adapters.base import BaseDirectoryClient  # noqa: E402
from shiftwatch.db import Base, SessionLocal, engine, get_db  # noqa: E402
from shiftwatch.exceptions import DirectoryLookupError  # noqa: E402
from shiftwatch.main import create_app  # noqa: E402
from shiftwatch.routers.utils.dependencies import get_session_scope  # noqa: E402

pytest_plugins = [
    "tests.fixtures.agent_fixtures",
    "tests.fixtures.activity_fixtures",
    "tests.fixtures.slack_fixtures",
]


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def directory_client():
    """Directory client that knows nobody and no threads unless a test says otherwise."""
    client = MagicMock(spec=BaseDirectoryClient)
    client.lookup_user.side_effect = DirectoryLookupError("user_not_found")
    client.lookup_thread_ts.return_value = None
    client.auth_test.return_value = {"ok": True, "user": "shiftbot", "team": "Ops"}
    return client


@pytest.fixture
def client(db, directory_client):
    """Client with db override and a mocked directory service."""
    app = create_app(testing=True, directory_client=directory_client)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    @contextmanager
    def override_session_scope():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_scope] = lambda: override_session_scope
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
