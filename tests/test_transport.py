"""Tests for the retrying HTTP transport."""

from __future__ import annotations

import io
import socket
from typing import Any
from unittest.mock import patch
from urllib.error import HTTPError, URLError

import pytest

from informer_client.errors import TransportError
from informer_client.transport import HttpRequest, RetryTransport


class FakeResponse:
    def __init__(self, status: int, body: bytes = b"{}", reason: str = "") -> None:
        self.status = status
        self.reason = reason
        self.headers: dict[str, str] = {}
        self._body = body
        self.closed = False

    def read(self) -> bytes:
        return self._body

    def close(self) -> None:
        self.closed = True


class ScriptedUrlopen:
    """Replays a script of responses/exceptions and records every request."""

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.requests: list[Any] = []
        self.timeouts: list[float] = []

    def __call__(self, request, timeout=10.0, context=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        outcome = self.script.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def test_transport_returns_first_success_without_sleeping() -> None:
    sleeps: list[float] = []
    transport = RetryTransport(timeout=2.5, retries=3, sleep=sleeps.append)
    fake = ScriptedUrlopen([FakeResponse(200, b'{"ok":true}')])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        response = transport.send(HttpRequest(method="get", url="https://api.example/x"))

    assert response.status == 200
    assert response.read() == b'{"ok":true}'
    assert sleeps == []
    assert fake.timeouts == [2.5]
    assert fake.requests[0].get_method() == "GET"


def test_transport_retries_network_errors_with_quadratic_backoff() -> None:
    sleeps: list[float] = []
    transport = RetryTransport(retries=3, backoff_unit=0.1, sleep=sleeps.append)
    fake = ScriptedUrlopen(
        [
            URLError("connection refused"),
            socket.timeout("timed out"),
            FakeResponse(200, b"done"),
        ]
    )

    with patch("informer_client.transport.urlopen", side_effect=fake):
        response = transport.send(HttpRequest(method="GET", url="https://api.example"))

    assert response.read() == b"done"
    assert len(fake.requests) == 3
    assert sleeps == pytest.approx([0.0, 0.1])


def test_transport_replays_stream_body_on_every_attempt() -> None:
    transport = RetryTransport(retries=2, sleep=lambda _: None)
    payload = b'{"address":"abc"}'
    fake = ScriptedUrlopen([URLError("reset"), FakeResponse(200)])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        transport.send(
            HttpRequest(method="POST", url="https://api.example", body=io.BytesIO(payload))
        )

    assert [request.data for request in fake.requests] == [payload, payload]


def test_transport_retries_server_errors_and_closes_discarded_responses() -> None:
    transport = RetryTransport(retries=2, sleep=lambda _: None)
    first = FakeResponse(502)
    second = FakeResponse(503)
    final = FakeResponse(200, b"ok")
    fake = ScriptedUrlopen([first, second, final])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        response = transport.send(HttpRequest(method="GET", url="https://api.example"))

    assert response.status == 200
    assert first.closed and second.closed
    assert not final.closed


def test_transport_returns_client_errors_without_retrying() -> None:
    transport = RetryTransport(retries=3, sleep=lambda _: None)
    error = HTTPError("https://api.example", 404, "Not Found", {}, io.BytesIO(b"missing"))
    fake = ScriptedUrlopen([error])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        response = transport.send(HttpRequest(method="GET", url="https://api.example"))

    assert response.status == 404
    assert response.reason == "Not Found"
    assert len(fake.requests) == 1


def test_transport_raises_last_network_error_when_exhausted() -> None:
    sleeps: list[float] = []
    transport = RetryTransport(retries=2, backoff_unit=0.1, sleep=sleeps.append)
    last = URLError("final failure")
    fake = ScriptedUrlopen([URLError("first"), FakeResponse(500), last])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        with pytest.raises(TransportError) as excinfo:
            transport.send(HttpRequest(method="GET", url="https://api.example"))

    assert excinfo.value.__cause__ is last
    assert excinfo.value.attempts == 3
    assert sleeps == pytest.approx([0.0, 0.1])


def test_transport_returns_final_server_error_response() -> None:
    transport = RetryTransport(retries=1, sleep=lambda _: None)
    fake = ScriptedUrlopen([URLError("down"), FakeResponse(503, reason="Unavailable")])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        response = transport.send(HttpRequest(method="GET", url="https://api.example"))

    assert response.status == 503
    assert response.reason == "Unavailable"


def test_transport_rejects_negative_retries() -> None:
    with pytest.raises(ValueError):
        RetryTransport(retries=-1)
