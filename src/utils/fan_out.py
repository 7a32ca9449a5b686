"""Concurrent fan-out/fan-in primitives for balance and rate rounds.

A round launches one worker thread per work item. Each worker computes its
result, writes it into a ``SharedResults`` aggregate under the aggregate's
lock and only then publishes progress tokens. Failed workers push their
exception onto an error queue instead. Once every worker has finished the
round reports a single outcome; at most one representative error is ever
surfaced.
"""

from __future__ import annotations

import logging
import queue
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Generic, Iterable, Iterator, Mapping, TypeVar

LOGGER = logging.getLogger("bank_informer.fan_out")

K = TypeVar("K")
V = TypeVar("V")

_CLOSED = object()


class AggregationError(RuntimeError):
    """Raised when at least one task of a fan-out round failed."""

    def __init__(self, message: str, failed: int, total: int) -> None:
        super().__init__(message)
        self.failed = failed
        self.total = total


class SharedResults(Generic[V]):
    """Result map shared by the tasks of a round, guarded by one lock."""

    def __init__(
        self, initial: Mapping[str, V] | None = None, *, fixed_keys: bool = False
    ) -> None:
        self._data: dict[str, V] = dict(initial or {})
        self._fixed_keys = fixed_keys
        self._lock = Lock()

    @classmethod
    def seeded(cls, keys: Iterable[str], value: V) -> "SharedResults[V]":
        """Pre-seed every key so readers never observe a missing entry."""
        return cls({key: value for key in keys}, fixed_keys=True)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def put_many(self, values: Mapping[str, V]) -> None:
        with self._lock:
            if self._fixed_keys:
                unknown = [key for key in values if key not in self._data]
                if unknown:
                    raise KeyError(f"Untracked result keys: {', '.join(unknown)}")
            self._data.update(values)

    def put(self, key: str, value: V) -> None:
        self.put_many({key: value})

    def snapshot(self) -> dict[str, V]:
        with self._lock:
            return dict(self._data)


class ProgressChannel:
    """Bounded progress queue sized to the expected number of completions.

    One extra slot is reserved for the close marker, so neither ``publish``
    nor ``close`` ever waits on a slow consumer.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative.")
        self.capacity = capacity
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=capacity + 1)
        self._published = 0
        self._closed = False
        self._lock = Lock()

    @property
    def published(self) -> int:
        with self._lock:
            return self._published

    def publish(self, token: str) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("Progress channel is closed.")
            if self._published >= self.capacity:
                raise RuntimeError(
                    f"Progress channel capacity {self.capacity} exceeded by {token!r}."
                )
            self._published += 1
            self._queue.put_nowait(token)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __iter__(self) -> Iterator[str]:
        while True:
            token = self._queue.get()
            if token is _CLOSED:
                return
            yield token


@dataclass
class RoundOutcome:
    total: int
    completed: int = 0
    errors: list[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Exception | None:
        return self.errors[0] if self.errors else None

    def raise_for_error(self, label: str = "fan-out") -> None:
        if not self.errors:
            return
        raise AggregationError(
            f"{label} round failed ({len(self.errors)} of {self.total} tasks): "
            f"{self.errors[0]}",
            failed=len(self.errors),
            total=self.total,
        ) from self.errors[0]


def run_fan_out(
    items: Iterable[K],
    task: Callable[[K], Mapping[str, V]],
    results: SharedResults[V],
    progress: ProgressChannel | None = None,
    *,
    label: str = "fan-out",
) -> RoundOutcome:
    """Run ``task`` for every item concurrently and wait for all of them.

    ``task`` returns the entries it owns; they are written to ``results``
    and each written key is published as a progress token. A failing task
    does not cancel its siblings.
    """
    work = list(items)
    outcome = RoundOutcome(total=len(work))
    if not work:
        return outcome

    errors: queue.Queue[Exception] = queue.Queue(maxsize=len(work))

    def worker(item: K) -> None:
        try:
            values = task(item)
            results.put_many(values)
            if progress is not None:
                for key in values:
                    progress.publish(key)
        except Exception as exc:
            LOGGER.debug("%s task for %s failed: %s", label, item, exc)
            errors.put_nowait(exc)

    with ThreadPoolExecutor(
        max_workers=len(work), thread_name_prefix=f"bank-informer-{label}"
    ) as pool:
        futures = [pool.submit(worker, item) for item in work]
        wait(futures)

    while not errors.empty():
        outcome.errors.append(errors.get_nowait())
    outcome.completed = outcome.total - len(outcome.errors)
    if outcome.errors:
        LOGGER.warning(
            "%s round: %d of %d tasks failed.", label, len(outcome.errors), outcome.total
        )
    return outcome
