"""Tests for the redundant-probe POKT balance client."""

from __future__ import annotations

import http.client
import json
from threading import Lock
from typing import Any
from unittest.mock import patch

import pytest

from informer_client.errors import ClientError
from informer_client.pokt import PoktClient
from informer_client.transport import RetryTransport
from utils.fan_out import AggregationError, ProgressChannel, SharedResults


class FakeResponse:
    def __init__(self, payload: Any, status: int = 200) -> None:
        self.status = status
        self.reason = ""
        self.headers: dict[str, str] = {}
        self._payload = payload

    def read(self) -> bytes:
        return json.dumps(self._payload).encode("utf8")

    def close(self) -> None:
        pass


class SequencedBalances:
    """Serves one scripted answer per call, in call order, across threads."""

    def __init__(self, answers: list[Any]) -> None:
        self.answers = list(answers)
        self.requests: list[Any] = []
        self._lock = Lock()

    def __call__(self, request, timeout=10.0, context=None):
        with self._lock:
            self.requests.append(request)
            answer = self.answers.pop(0)
        if isinstance(answer, int):
            return FakeResponse({"balance": answer})
        return answer


def _client(probes: int = 5, attempts: int = 1) -> PoktClient:
    transport = RetryTransport(retries=0, sleep=lambda _: None)
    return PoktClient(
        "https://path.example/",
        "path-key",
        "a" * 40,
        transport,
        probes=probes,
        attempts_per_probe=attempts,
    )


def test_query_balance_request_format() -> None:
    fake = SequencedBalances([1_000_000])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        balance = _client().query_balance()

    assert balance == 1_000_000
    request = fake.requests[0]
    assert request.full_url == "https://path.example/v1/query/balance"
    assert json.loads(request.data) == {"address": "a" * 40}
    assert request.get_header("Target-service-id") == "F000"
    assert request.get_header("Authorization") == "path-key"


def test_fetch_balance_takes_maximum_of_probes() -> None:
    fake = SequencedBalances([100_000_000, 100_000_000, 98_000_000, 100_000_000, 100_000_000])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        balance = _client().fetch_balance()

    assert balance == pytest.approx(100.0)
    assert len(fake.requests) == 5


def test_fetch_balance_tolerates_some_failed_probes() -> None:
    fake = SequencedBalances(
        [FakeResponse({}, status=400), 5_000_000, FakeResponse({}, status=401)]
    )

    with patch("informer_client.transport.urlopen", side_effect=fake):
        balance = _client(probes=3).fetch_balance()

    assert balance == pytest.approx(5.0)


def test_fetch_balance_fails_when_every_probe_fails() -> None:
    fake = SequencedBalances([FakeResponse({}, status=400) for _ in range(4)])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        with pytest.raises(AggregationError) as excinfo:
            _client(probes=2, attempts=2).fetch_balance()

    assert isinstance(excinfo.value.__cause__, ClientError)
    assert len(fake.requests) == 4


def test_probe_retries_until_a_success() -> None:
    fake = SequencedBalances([FakeResponse({}, status=404), 7_000_000])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        raw = _client(attempts=3).probe_balance()

    assert raw == 7_000_000


def test_fill_balances_writes_and_publishes_pokt() -> None:
    fake = SequencedBalances([2_500_000])
    balances = SharedResults.seeded(["POKT"], 0.0)
    channel = ProgressChannel(1)

    with patch("informer_client.transport.urlopen", side_effect=fake):
        _client(probes=1).fill_balances(balances, channel)
    channel.close()

    assert balances.snapshot() == {"POKT": pytest.approx(2.5)}
    assert list(channel) == ["POKT"]


class TruncatedBody(FakeResponse):
    def read(self) -> bytes:
        raise http.client.IncompleteRead(b'{"bal', 20)


def test_probe_retries_after_truncated_body() -> None:
    fake = SequencedBalances([TruncatedBody({}), 3_000_000])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        raw = _client(attempts=2).probe_balance()

    assert raw == 3_000_000
    assert len(fake.requests) == 2


def test_probe_raises_last_error_when_attempts_exhausted() -> None:
    fake = SequencedBalances([FakeResponse({}, status=404), FakeResponse({}, status=403)])

    with patch("informer_client.transport.urlopen", side_effect=fake):
        with pytest.raises(ClientError, match="403"):
            _client(attempts=2).probe_balance()
