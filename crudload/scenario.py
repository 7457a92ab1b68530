"""
Scenario Runner — one create/read/update/delete iteration.

A single iteration issues, strictly in order::

    GET    /users        -> 200
    POST   /users        -> 201   (body decoded for the new user's id)
    GET    /users/{id}   -> 200   \\
    PUT    /users/{id}   -> 200    > only when an id was obtained
    DELETE /users/{id}   -> 204   /

and then pauses for the think time.  Every request produces a named
check in the :class:`~crudload.checks.CheckRecorder`.  A failed check
never stops the sequence, and nothing is retried: a transport error or
an unexpected status is simply a failed check, and a missing id only
skips the three steps that need it.

The runner works with any session exposing ``requests.Session.request``,
which includes Locust's ``HttpSession``; Locust reports connection
errors as responses with status ``0`` instead of raising, and both
shapes end up as failed checks here.

Key Concepts Demonstrated:
- Result-returning steps instead of exceptions for expected failures
- Encoding-agnostic request flow via the :class:`WireFormat` interface
- Per-iteration state (the user id) that never outlives the iteration
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

from .checks import CheckRecorder
from .models import UserRecord
from .wire import WireFormat

logger = logging.getLogger(__name__)

CHECK_LIST = "GET all users - status 200"
CHECK_CREATE = "POST create user - status 201"
CHECK_READ = "GET single user - status 200"
CHECK_UPDATE = "PUT update user - status 200"
CHECK_DELETE = "DELETE user - status 204"

DEFAULT_CREATE_PAYLOAD = UserRecord(name="TestUser", email="test@example.com")
DEFAULT_UPDATE_PAYLOAD = UserRecord(name="UpdatedUser", email="updated@example.com")


@dataclass(frozen=True)
class StepOutcome:
    """What happened on one request of the sequence."""

    check: str
    method: str
    url: str
    expected_status: int
    status: int | None
    passed: bool
    duration: float
    body: bytes = b""
    error: str | None = None


@dataclass
class IterationResult:
    """All step outcomes of one iteration plus the id it worked with."""

    user_id: str | None = None
    steps: list[StepOutcome] = field(default_factory=list)

    @property
    def checks(self) -> list[str]:
        return [step.check for step in self.steps]

    @property
    def passed(self) -> bool:
        return all(step.passed for step in self.steps)


class ScenarioRunner:
    """
    Execute the CRUD sequence against one backend.

    Each worker owns its own runner (and therefore its own HTTP session);
    the only thing shared between runners is the check recorder.

    Args:
        session: ``requests.Session`` or a compatible object (Locust
            ``HttpSession``).
        base_url: Root of the users API, e.g. ``http://localhost:8081/json``.
        wire_format: Encoder/decoder for the backend's media type.
        recorder: Destination for check results.
        create_payload: Template record POSTed on every iteration.
        update_payload: Template record PUT on every iteration.
        think_time: Seconds to pause after the sequence.
        timeout: Per-request timeout in seconds.
        sleep: Injected for tests; defaults to :func:`time.sleep`.
        request_names: Pass grouped request names (``/users/[id]``) to the
            session so Locust statistics are not split per user id.
        owns_session: Close ``session`` when :meth:`close` is called.
    """

    def __init__(
        self,
        session: Any,
        base_url: str,
        wire_format: WireFormat,
        recorder: CheckRecorder,
        *,
        create_payload: UserRecord = DEFAULT_CREATE_PAYLOAD,
        update_payload: UserRecord = DEFAULT_UPDATE_PAYLOAD,
        think_time: float = 1.0,
        timeout: float | None = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        request_names: bool = False,
        owns_session: bool = False,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._wire_format = wire_format
        self._recorder = recorder
        self._create_body = wire_format.encode(create_payload)
        self._update_body = wire_format.encode(update_payload)
        self._think_time = think_time
        self._timeout = timeout
        self._sleep = sleep
        self._request_names = request_names
        self._owns_session = owns_session

    @property
    def wire_format(self) -> WireFormat:
        return self._wire_format

    def run_iteration(self) -> IterationResult:
        """Run list, create and (id permitting) read/update/delete, then pause."""
        result = IterationResult()
        collection_url = f"{self._base_url}/users"

        result.steps.append(
            self._send(CHECK_LIST, "GET", collection_url, 200, name="/users")
        )

        created = self._send(
            CHECK_CREATE,
            "POST",
            collection_url,
            201,
            body=self._create_body,
            name="/users",
        )
        result.steps.append(created)

        # Decoded whatever the status: a backend answering 200 instead of
        # 201 still gets its read/update/delete traffic.
        result.user_id = self._wire_format.decode_id(created.body) if created.body else None

        if result.user_id is None:
            logger.debug("No user id in create response (status=%s); skipping", created.status)
        else:
            item_url = f"{collection_url}/{result.user_id}"
            result.steps.append(
                self._send(CHECK_READ, "GET", item_url, 200, name="/users/[id]")
            )
            result.steps.append(
                self._send(
                    CHECK_UPDATE,
                    "PUT",
                    item_url,
                    200,
                    body=self._update_body,
                    name="/users/[id]",
                )
            )
            result.steps.append(
                self._send(CHECK_DELETE, "DELETE", item_url, 204, name="/users/[id]")
            )

        if self._think_time > 0:
            self._sleep(self._think_time)
        return result

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _send(
        self,
        check: str,
        method: str,
        url: str,
        expected_status: int,
        *,
        body: bytes | None = None,
        name: str,
    ) -> StepOutcome:
        kwargs: dict[str, Any] = {"timeout": self._timeout}
        if body is not None:
            kwargs["data"] = body
            kwargs["headers"] = {"Content-Type": self._wire_format.media_type}
        if self._request_names:
            kwargs["name"] = f"{name} [{method}]"

        started = time.perf_counter()
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            duration = time.perf_counter() - started
            logger.debug("%s %s failed: %s", method, url, exc)
            self._recorder.record(check, False)
            return StepOutcome(
                check=check,
                method=method,
                url=url,
                expected_status=expected_status,
                status=None,
                passed=False,
                duration=duration,
                error=f"{type(exc).__name__}: {exc}",
            )

        duration = time.perf_counter() - started
        status = response.status_code
        passed = status == expected_status
        error = None
        if status == 0:
            # Locust's HttpSession reports transport failures this way.
            error = str(getattr(response, "error", None) or "connection failed")
            self._recorder.record(check, False)
        else:
            self._recorder.record(check, passed, duration)

        if not passed:
            logger.debug("%s %s returned %s, expected %s", method, url, status, expected_status)

        return StepOutcome(
            check=check,
            method=method,
            url=url,
            expected_status=expected_status,
            status=status,
            passed=passed,
            duration=duration,
            body=response.content or b"",
            error=error,
        )
