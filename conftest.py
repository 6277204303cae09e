# type: ignore
"""Shared fixtures: in-memory database, app, HTTP client, fake realtime observer."""
import asyncio
import json
import os

# Force test config BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from main import create_app

SCHEMA = (
    """
    CREATE TABLE users (
        matricule   VARCHAR(32) NOT NULL,
        first_name  VARCHAR(64),
        last_name   VARCHAR(64),
        role        VARCHAR(32),
        password    VARCHAR(64)
    )
    """,
    """
    CREATE TABLE wires (
        unico       VARCHAR(64) NOT NULL,
        machine     VARCHAR(64),
        type        VARCHAR(16)
    )
    """,
    """
    CREATE TABLE urgents (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        unico           VARCHAR(64) NOT NULL,
        machine         VARCHAR(64),
        status          VARCHAR(8) NOT NULL DEFAULT 'NOK',
        declared_by     VARCHAR(32),
        declared_at     DATETIME NOT NULL,
        corrected_by    VARCHAR(32),
        corrected_at    DATETIME,
        plan_b          BOOLEAN NOT NULL DEFAULT 0,
        mc_pb           VARCHAR(64),
        type            VARCHAR(32),
        time_remaining  VARCHAR(32)
    )
    """,
)

USERS = [
    {"matricule": "588", "first_name": "Karim", "last_name": "AISSAM", "role": "Opera", "password": "1234"},
    {"matricule": "1935", "first_name": "Sara", "last_name": "HANIFA", "role": "Admin", "password": "abcd"},
    {"matricule": " 77 ", "first_name": None, "last_name": "", "role": "Cutting", "password": " pw77 "},
]

WIRES = ["LH-148031", "LH-148032", "LH-200100", "LH-300300", " LH-400400 "]

DECLARER = {"declarerMatricule": "588", "password": "1234"}
CORRECTOR = {"correctorMatricule": "1935", "password": "abcd"}


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test (shared via StaticPool)."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        for ddl in SCHEMA:
            await conn.execute(text(ddl))
        await conn.execute(
            text("INSERT INTO users (matricule, first_name, last_name, role, password) "
                 "VALUES (:matricule, :first_name, :last_name, :role, :password)"),
            USERS,
        )
        await conn.execute(
            text("INSERT INTO wires (unico, machine, type) VALUES (:unico, 'MC27', 'COUPE')"),
            [{"unico": u} for u in WIRES],
        )
    yield eng
    await eng.dispose()


@pytest.fixture
def app(engine):
    return create_app(engine=engine)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class FakeSocket:
    """Stands in for a WebSocket; records every frame it is sent."""

    def __init__(self, fail_on_send: bool = False):
        self.frames = []
        self.accepted = False
        self.closed = False
        self.close_code = None
        self._fail_on_send = fail_on_send

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self._fail_on_send:
            raise RuntimeError("socket gone")
        self.frames.append(json.loads(data))

    async def close(self, code: int = 1000):
        self.closed = True
        self.close_code = code

    def events(self):
        return [f for f in self.frames if f["event"] != "heartbeat"]

    async def wait_for(self, count: int, timeout: float = 2.0):
        """Block until ``count`` lifecycle frames arrived (or fail)."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.events()) < count:
            if loop.time() > deadline:
                raise AssertionError(f"expected {count} events, got {self.events()}")
            await asyncio.sleep(0.01)
        return self.events()


@pytest_asyncio.fixture
async def observer(app):
    """A connected dashboard, with the notifier dispatcher running."""
    notifier = app.state.notifier
    await notifier.start()
    socket = FakeSocket()
    assert await notifier.connections.connect(socket)
    yield socket
    await notifier.stop()


async def declare(client, unico="LH-148031", machine="MC27", **extra):
    body = {**DECLARER, "unico": unico, "machine": machine, **extra}
    return await client.post("/urgent", json=body)
