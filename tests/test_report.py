"""Tests for the day-over-day report and its rendering."""

from __future__ import annotations

import io
from datetime import date

import pytest
from rich.console import Console

from cli.display import render_report
from engine.aggregator import PortfolioSnapshot, compute_fiat_values
from engine.average_store import AverageStore, Sample
from engine.report import ReportSettings, build_daily_report

TODAY = date(2024, 1, 2)

RATES = {
    "USD": {"ETH": 2000.0, "POKT": 0.05, "WPOKT": 0.05},
    "CAD": {"ETH": 2700.0, "POKT": 0.07, "WPOKT": 0.07},
}


def _snapshot(balances: dict[str, float]) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        balances=balances,
        exchange_rates=RATES,
        fiat_values=compute_fiat_values(balances, RATES),
    )


def _settings(**overrides) -> ReportSettings:
    values = {
        "primary_currency": "USD",
        "convert_currencies": ["USD", "CAD"],
        "crypto_values": ["ETH", "POKT"],
    }
    values.update(overrides)
    return ReportSettings(**values)


@pytest.fixture
def store(tmp_path):
    with AverageStore(tmp_path / "samples.sqlite3", clock=lambda: 1_700_000_000.0) as store:
        yield store


def test_first_run_has_no_history_and_records_samples(store) -> None:
    report = build_daily_report(
        _snapshot({"ETH": 1.0, "POKT": 1000.0}), _settings(), store, TODAY
    )

    assert [line.symbol for line in report.assets] == ["ETH", "POKT"]
    assert all(line.change is None for line in report.assets)
    assert not report.has_history
    assert [total.change for total in report.totals] == [None, None]
    sample = store.read_samples("ETH-2024-01-02")[0]
    assert sample == Sample(1.0, 2000.0, 2000.0)


def test_changes_are_measured_against_yesterdays_average(store) -> None:
    store.write_sample("ETH-2024-01-01", Sample(1.0, 1900.0, 1900.0))
    store.write_sample("ETH-2024-01-01", Sample(1.0, 1700.0, 1700.0))
    store.write_sample("POKT-2024-01-01", Sample(1000.0, 0.05, 50.0))

    report = build_daily_report(
        _snapshot({"ETH": 1.0, "POKT": 1000.0}), _settings(), store, TODAY
    )

    eth, pokt = report.assets
    assert eth.change == pytest.approx(2000.0 - 1800.0)
    assert pokt.change == pytest.approx(0.0)
    assert report.yesterday_total == pytest.approx(1850.0)

    usd, cad = report.totals
    assert usd.total == pytest.approx(2050.0)
    assert usd.change == pytest.approx(200.0)
    assert cad.total == pytest.approx(2770.0)
    assert cad.change == pytest.approx(200.0 * 2770.0 / 2050.0)


def test_assets_without_balances_are_skipped(store) -> None:
    report = build_daily_report(
        _snapshot({"ETH": 1.0}), _settings(crypto_values=["ETH", "USDC"]), store, TODAY
    )

    assert [line.symbol for line in report.assets] == ["ETH"]


def test_pokt_total_combines_native_and_wrapped(store) -> None:
    report = build_daily_report(
        _snapshot({"POKT": 1000.0, "WPOKT": 500.0}),
        _settings(crypto_values=["POKT", "WPOKT"]),
        store,
        TODAY,
    )

    assert report.pokt_total is not None
    assert report.pokt_total.balance == pytest.approx(1500.0)
    assert report.pokt_total.fiat_balance == pytest.approx(75.0)


def test_exchange_amount_adds_section_and_currency_totals(store) -> None:
    store.write_sample("POKT-EXCHANGE-2024-01-01", Sample(2000.0, 0.04, 80.0))

    report = build_daily_report(
        _snapshot({"ETH": 1.0}),
        _settings(crypto_values=["ETH"], pokt_exchange_amount=2000.0),
        store,
        TODAY,
    )

    assert report.exchange is not None
    assert report.exchange.fiat_balance == pytest.approx(100.0)
    assert report.exchange.change == pytest.approx(20.0)
    totals = {line.currency: line.total for line in report.totals}
    assert totals == {"USD": pytest.approx(2100.0), "CAD": pytest.approx(2840.0)}
    assert store.average("POKT-EXCHANGE-2024-01-02").crypto_balance == 2000.0


def test_render_report_shows_sections_and_missing_history(store) -> None:
    store.write_sample("ETH-2024-01-01", Sample(1.0, 1900.0, 1900.0))
    report = build_daily_report(
        _snapshot({"ETH": 1.0, "POKT": 1234.0}), _settings(), store, TODAY
    )
    buffer = io.StringIO()

    render_report(report, Console(file=buffer, width=120, color_system=None))

    output = buffer.getvalue()
    assert "Crypto Balances" in output
    assert "ETH - 1.000000 @ $2,000.00 = $2,000.00 USD 100.00" in output
    assert "POKT - 1,234 @ $0.0500 = $61.70 USD No data" in output
    assert "USD - $2,061.70" in output
    assert "Exchange Balances" not in output


def test_settings_from_config_object() -> None:
    class Config:
        crypto_fiat_conversion = "CAD"
        convert_currencies = ["CAD"]
        crypto_values = ["ETH"]
        pokt_exchange_amount = 5

    settings = ReportSettings.from_config(Config())

    assert settings.primary_currency == "CAD"
    assert settings.pokt_exchange_amount == 5.0


def test_repeated_asset_is_reported_and_recorded_once(store) -> None:
    store.write_sample("ETH-2024-01-01", Sample(0.05, 2000.0, 100.0))

    report = build_daily_report(
        _snapshot({"ETH": 0.05}), _settings(crypto_values=["ETH", "ETH"]), store, TODAY
    )

    assert [line.symbol for line in report.assets] == ["ETH"]
    assert report.yesterday_total == pytest.approx(100.0)
    assert report.totals[0].change == pytest.approx(0.0)
    assert len(store.read_samples("ETH-2024-01-02")) == 1
