from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-device-tokens")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_STARTUP_MIGRATIONS"] = "false"

from confichannel.core.security import create_device_token
from confichannel.db.session import Base
from confichannel.db.session import get_db as app_get_session
from confichannel.main import app as fastapi_app
from confichannel.services.events import get_event_sink

TEST_DB_URL = "sqlite://"


class RecordingEventSink:
    """Event sink that keeps every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def record(self, event_name: str, **attributes: Any) -> None:
        self.events.append((event_name, attributes))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest inside the test transaction
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits escaped.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def event_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    event_sink: RecordingEventSink,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_event_sink] = lambda: event_sink
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_event_sink, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_device() -> Callable[[], tuple[str, dict[str, str]]]:
    """Return a factory producing a device id and its authorization headers."""

    def _make() -> tuple[str, dict[str, str]]:
        device_id = str(uuid.uuid4())
        token = create_device_token(device_id)
        return device_id, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def device(make_device) -> tuple[str, dict[str, str]]:
    return make_device()


@pytest.fixture()
def other_device(make_device) -> tuple[str, dict[str, str]]:
    return make_device()


@pytest.fixture()
def create_channel(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Return a helper that creates a channel through the API."""

    def _create(headers: dict[str, str], **body: Any) -> dict[str, Any]:
        payload = {"channel_type": "bidirectional", "encryption_mode": "none"}
        payload.update(body)
        response = client.post("/api/v1/channels", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture()
def channel(device, create_channel) -> dict[str, Any]:
    """A bidirectional channel owned by ``device``."""
    _, headers = device
    return create_channel(headers)


def with_passcode(headers: dict[str, str], passcode: str) -> dict[str, str]:
    return {**headers, "X-Confi-Passcode": passcode}


@pytest.fixture()
def passcode_headers() -> Callable[[dict[str, str], str], dict[str, str]]:
    return with_passcode
