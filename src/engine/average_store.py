"""Daily sample store with running averages and time-based expiry.

Each key holds an append-only JSON list of samples in a local SQLite
database. Every write pushes the key's expiry to ``now + ttl``. Reads do not
filter on expiry; stale keys disappear only when ``sweep()`` runs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

LOGGER = logging.getLogger("bank_informer.average_store")

SAMPLE_TTL_SECONDS = 72 * 60 * 60
DATE_FORMAT = "%Y-%m-%d"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS samples (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL NOT NULL
)
"""


class StoreError(RuntimeError):
    """Raised for I/O failures or corrupt data in the sample store."""


class SampleNotFoundError(KeyError):
    """Raised when no samples are stored under a key."""


@dataclass(frozen=True)
class Sample:
    crypto_balance: float
    fiat_value: float
    fiat_balance: float

    def to_payload(self) -> dict[str, float]:
        return {
            "cryptoBalance": self.crypto_balance,
            "fiatValue": self.fiat_value,
            "fiatBalance": self.fiat_balance,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Sample":
        return cls(
            crypto_balance=float(payload["cryptoBalance"]),
            fiat_value=float(payload["fiatValue"]),
            fiat_balance=float(payload["fiatBalance"]),
        )


@dataclass(frozen=True)
class AverageRecord:
    crypto_balance: float
    fiat_value: float
    fiat_balance: float
    samples: int

    @classmethod
    def from_samples(cls, samples: Iterable[Sample]) -> "AverageRecord":
        values = list(samples)
        if not values:
            raise ValueError("Cannot average an empty sample list.")
        count = len(values)
        return cls(
            crypto_balance=sum(s.crypto_balance for s in values) / count,
            fiat_value=sum(s.fiat_value for s in values) / count,
            fiat_balance=sum(s.fiat_balance for s in values) / count,
            samples=count,
        )


def sample_key(asset: str, day: date) -> str:
    return f"{asset}-{day.strftime(DATE_FORMAT)}"


def exchange_key(asset: str, day: date) -> str:
    return f"{asset}-EXCHANGE-{day.strftime(DATE_FORMAT)}"


class AverageStore:
    def __init__(
        self,
        path: str | Path,
        *,
        ttl: float = SAMPLE_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.path = Path(path)
        self.ttl = ttl
        self._clock = clock or time.time
        self._lock = Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self.path), isolation_level=None, check_same_thread=False
            )
            self._conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Failed to open sample store at {self.path}: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "AverageStore":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def write_sample(self, key: str, sample: Sample) -> None:
        """Append ``sample`` to the key's list and refresh its expiry."""
        now = self._clock()
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    row = self._conn.execute(
                        "SELECT value, expires_at FROM samples WHERE key = ?", (key,)
                    ).fetchone()
                    samples: list[Sample] = []
                    if row is not None and row[1] > now:
                        samples = _deserialize(key, row[0])
                    samples.append(sample)
                    self._conn.execute(
                        "INSERT OR REPLACE INTO samples (key, value, expires_at) "
                        "VALUES (?, ?, ?)",
                        (key, _serialize(samples), now + self.ttl),
                    )
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to write samples for {key}: {exc}") from exc

    def read_samples(self, key: str) -> list[Sample]:
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value FROM samples WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to read samples for {key}: {exc}") from exc
        if row is None:
            raise SampleNotFoundError(key)
        return _deserialize(key, row[0])

    def average(self, key: str) -> AverageRecord:
        """Mean of every stored sample field for ``key``."""
        return AverageRecord.from_samples(self.read_samples(key))

    def read_all_averages(self) -> dict[str, AverageRecord]:
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT key, value FROM samples ORDER BY key"
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to read sample store: {exc}") from exc
        return {
            key: AverageRecord.from_samples(_deserialize(key, value))
            for key, value in rows
        }

    def sweep(self) -> int:
        """Delete every entry whose expiry has passed; returns the count."""
        now = self._clock()
        with self._lock:
            try:
                cursor = self._conn.execute(
                    "DELETE FROM samples WHERE expires_at <= ?", (now,)
                )
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to sweep sample store: {exc}") from exc
        removed = cursor.rowcount
        if removed:
            LOGGER.info("Removed %d expired sample entries.", removed)
        return removed


def _serialize(samples: list[Sample]) -> str:
    return json.dumps([sample.to_payload() for sample in samples], separators=(",", ":"))


def _deserialize(key: str, value: str) -> list[Sample]:
    try:
        payload = json.loads(value)
        samples = [Sample.from_payload(item) for item in payload]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise StoreError(f"Corrupt sample data for {key}: {exc}") from exc
    if not samples:
        raise StoreError(f"Empty sample list stored for {key}.")
    return samples
