"""Day-over-day portfolio report.

Compares today's balances against yesterday's averaged samples and records
today's samples so later runs can do the same.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from engine.aggregator import PortfolioSnapshot
from engine.average_store import (
    AverageStore,
    Sample,
    SampleNotFoundError,
    exchange_key,
    sample_key,
)
from informer_client.pokt import POKT_SYMBOL

LOGGER = logging.getLogger("bank_informer.report")

POKT_VARIANTS = (POKT_SYMBOL, "WPOKT")


@dataclass(frozen=True)
class ReportSettings:
    primary_currency: str
    convert_currencies: list[str]
    crypto_values: list[str]
    pokt_exchange_amount: float = 0.0

    @classmethod
    def from_config(cls, config: Any) -> "ReportSettings":
        return cls(
            primary_currency=config.crypto_fiat_conversion,
            convert_currencies=list(config.convert_currencies),
            crypto_values=list(config.crypto_values),
            pokt_exchange_amount=float(config.pokt_exchange_amount),
        )


@dataclass(frozen=True)
class AssetLine:
    symbol: str
    balance: float
    unit_price: float
    fiat_balance: float
    # None when yesterday has no samples.
    change: float | None = None


@dataclass(frozen=True)
class FiatTotalLine:
    currency: str
    total: float
    change: float | None = None


@dataclass
class DailyReport:
    day: date
    primary_currency: str
    assets: list[AssetLine] = field(default_factory=list)
    pokt_total: AssetLine | None = None
    exchange: AssetLine | None = None
    totals: list[FiatTotalLine] = field(default_factory=list)
    yesterday_total: float = 0.0
    has_history: bool = False


def build_daily_report(
    snapshot: PortfolioSnapshot,
    settings: ReportSettings,
    store: AverageStore,
    today: date,
) -> DailyReport:
    """Build the report and persist today's samples.

    Store failures propagate as ``StoreError``.
    """
    yesterday = today - timedelta(days=1)
    primary = settings.primary_currency
    primary_rates = snapshot.exchange_rates.get(primary, {})
    report = DailyReport(day=today, primary_currency=primary)

    pokt_balance = 0.0
    pokt_fiat_balance = 0.0
    for symbol in dict.fromkeys(settings.crypto_values):
        if symbol not in snapshot.balances:
            continue
        balance = snapshot.balances[symbol]
        unit_price = primary_rates.get(symbol, 0.0)
        fiat_balance = balance * unit_price

        change = _change_since(
            store, sample_key(symbol, yesterday), fiat_balance, report
        )
        report.assets.append(
            AssetLine(symbol, balance, unit_price, fiat_balance, change)
        )
        if symbol in POKT_VARIANTS:
            pokt_balance += balance
            pokt_fiat_balance += fiat_balance

        store.write_sample(
            sample_key(symbol, today), Sample(balance, unit_price, fiat_balance)
        )

    if _tracks_all(settings.crypto_values, POKT_VARIANTS) and pokt_balance > 0:
        report.pokt_total = AssetLine(
            "POKT Total",
            pokt_balance,
            primary_rates.get(POKT_SYMBOL, 0.0),
            pokt_fiat_balance,
        )

    exchange_values: dict[str, float] = {}
    amount = settings.pokt_exchange_amount
    if amount > 0 and POKT_SYMBOL in primary_rates:
        unit_price = primary_rates[POKT_SYMBOL]
        fiat_balance = amount * unit_price
        change = _change_since(
            store, exchange_key(POKT_SYMBOL, yesterday), fiat_balance, report
        )
        report.exchange = AssetLine(POKT_SYMBOL, amount, unit_price, fiat_balance, change)
        store.write_sample(
            exchange_key(POKT_SYMBOL, today), Sample(amount, unit_price, fiat_balance)
        )
        for currency in settings.convert_currencies:
            rate = snapshot.exchange_rates.get(currency, {}).get(POKT_SYMBOL)
            if rate is not None:
                exchange_values[currency] = amount * rate

    primary_total = snapshot.fiat_values.get(primary, 0.0) + exchange_values.get(
        primary, 0.0
    )
    primary_change = primary_total - report.yesterday_total
    for currency in settings.convert_currencies:
        if currency not in snapshot.fiat_values:
            continue
        total = snapshot.fiat_values[currency] + exchange_values.get(currency, 0.0)
        change: float | None = None
        if report.has_history:
            if currency == primary:
                change = primary_change
            elif primary_total:
                change = primary_change * (total / primary_total)
            else:
                change = 0.0
        report.totals.append(FiatTotalLine(currency, total, change))

    LOGGER.info(
        "Report for %s: %d assets, %s total %.2f",
        today.isoformat(),
        len(report.assets),
        primary,
        primary_total,
    )
    return report


def _change_since(
    store: AverageStore, key: str, fiat_balance: float, report: DailyReport
) -> float | None:
    try:
        previous = store.average(key)
    except SampleNotFoundError:
        LOGGER.debug("No samples stored under %s", key)
        return None
    report.yesterday_total += previous.fiat_balance
    report.has_history = True
    return fiat_balance - previous.fiat_balance


def _tracks_all(tracked: Iterable[str], symbols: Iterable[str]) -> bool:
    tracked_set = set(tracked)
    return all(symbol in tracked_set for symbol in symbols)
