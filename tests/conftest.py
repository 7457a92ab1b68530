"""
Shared pytest fixtures for the load driver test suite.

Provides the reusable test infrastructure used by unit and integration
tests: a scripted fake HTTP session, a fresh check recorder, Faker-made
user records, and a live-server factory that serves the stub users
service on an ephemeral port.

Key Concepts Demonstrated:
- Fixture scopes (function vs. session) for isolation and speed
- Scripted fakes instead of network I/O for the scenario logic
- Live server in a background thread for end-to-end runs
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from typing import Any

import pytest
from faker import Faker
from werkzeug.serving import make_server

# Set testing environment before importing the driver configuration
os.environ["LOADTEST_ENV"] = "testing"

from crudload.checks import CheckRecorder
from crudload.models import UserRecord
from tests.stubs.users_service import create_users_app

fake = Faker()


# -----------------------------------------------------------------------------
# Fake HTTP session
# -----------------------------------------------------------------------------

@dataclass
class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    status_code: int
    content: bytes = b""


@dataclass
class FakeSession:
    """
    Scripted replacement for ``requests.Session``.

    ``routes`` maps ``(method, url)`` to a response, an exception
    instance (raised), or a callable returning either.  Unscripted
    requests answer 404.  Every call is captured in ``calls``.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    calls: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        outcome = self.routes.get((method, url), FakeResponse(404))
        if callable(outcome) and not isinstance(outcome, FakeResponse):
            outcome = outcome()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True

    @property
    def requested(self) -> list[tuple[str, str]]:
        return [(method, url) for method, url, _ in self.calls]


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def recorder() -> CheckRecorder:
    """Fresh recorder per test, as every run starts from empty counters."""
    return CheckRecorder()


@pytest.fixture
def make_user() -> Callable[..., UserRecord]:
    """Factory for realistic user records (single-line, colon-free values)."""

    def _make(user_id: str | None = None) -> UserRecord:
        return UserRecord(
            name=fake.first_name(),
            email=fake.free_email(),
            id=user_id if user_id is not None else str(fake.random_int(1, 99999)),
        )

    return _make


# -----------------------------------------------------------------------------
# Live stub services
# -----------------------------------------------------------------------------

@dataclass
class LiveService:
    base_url: str
    app: Any

    @property
    def request_log(self) -> list[tuple[str, str, str | None]]:
        return self.app.config["REQUEST_LOG"]


@pytest.fixture
def live_users_service() -> Generator[Callable[..., LiveService], None, None]:
    """
    Start stub users services in background threads.

    Yields a factory ``(flavour, prefix="", first_id=1) -> LiveService``;
    every server started through it is shut down after the test.
    """
    servers = []

    def _start(flavour: str, *, prefix: str = "", first_id: int = 1) -> LiveService:
        app = create_users_app(flavour, prefix=prefix, first_id=first_id)
        server = make_server("127.0.0.1", 0, app, threaded=True)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread))
        return LiveService(base_url=f"http://127.0.0.1:{server.server_port}{prefix}", app=app)

    yield _start

    for server, thread in servers:
        server.shutdown()
        thread.join(timeout=5)
