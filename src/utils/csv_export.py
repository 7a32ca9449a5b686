"""CSV export of today's averaged samples."""

from __future__ import annotations

import csv
import logging
from datetime import date
from pathlib import Path
from typing import Iterable

from engine.average_store import DATE_FORMAT, AverageStore, SampleNotFoundError, sample_key

LOGGER = logging.getLogger("bank_informer.csv_export")

CSV_HEADER = ["date", "cryptoSymbol", "cryptoBalance", "fiatValue", "fiatBalance"]
TOTAL_SYMBOL = "TOTAL"


def export_averages(
    store: AverageStore,
    cryptos: Iterable[str],
    csv_path: Path,
    today: date,
) -> int:
    """Write today's averages into ``csv_path``; returns rows written or replaced.

    Rows already present for the same date and symbol are replaced in place,
    other rows are kept. A ``TOTAL`` row sums the averaged fiat balances.
    """
    day = today.strftime(DATE_FORMAT)
    records = _read_records(csv_path)

    written = 0
    total_fiat_balance = 0.0
    for crypto in cryptos:
        try:
            average = store.average(sample_key(crypto, today))
        except SampleNotFoundError:
            LOGGER.debug("No samples for %s on %s; skipping export row.", crypto, day)
            continue
        total_fiat_balance += average.fiat_balance
        _update_or_add(
            records,
            [
                day,
                crypto,
                f"{average.crypto_balance:f}",
                f"{average.fiat_value:f}",
                f"{average.fiat_balance:f}",
            ],
        )
        written += 1

    _update_or_add(records, [day, TOTAL_SYMBOL, "", "", f"{total_fiat_balance:f}"])
    written += 1

    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_HEADER)
        writer.writerows(records)
    LOGGER.info("Exported %d rows for %s to %s", written, day, csv_path)
    return written


def _read_records(csv_path: Path) -> list[list[str]]:
    if not csv_path.exists():
        return []
    with csv_path.open(newline="", encoding="utf-8") as handle:
        rows = [row for row in csv.reader(handle) if row]
    if rows and rows[0] and rows[0][0] == CSV_HEADER[0]:
        rows = rows[1:]
    return rows


def _update_or_add(records: list[list[str]], record: list[str]) -> None:
    for index, existing in enumerate(records):
        if existing[:2] == record[:2]:
            records[index] = record
            return
    records.append(record)
