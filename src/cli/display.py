"""Rich terminal rendering of the daily report."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.text import Text

from engine.report import AssetLine, DailyReport
from utils.formatting import (
    change_color,
    fiat_emoji,
    fiat_symbol,
    format_change,
    format_crypto,
    format_fiat,
)


def print_banner(
    console: Console,
    primary: str,
    currencies: list[str],
    cryptos: list[str],
    started_at: datetime | None = None,
) -> None:
    started = (started_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    console.print(f"🔎 Bank Informer script is starting at {started}")
    console.print(f"🔄 Fetching exchange rates for the following currencies: {', '.join(currencies)}")
    console.print(
        "💹 Crypto totals will be displayed in both crypto and the following "
        f"fiat currency: {primary}"
    )
    console.print(
        "💻 Crypto values will be displayed for the following cryptocurrencies: "
        f"{', '.join(cryptos)}"
    )


def _change_text(change: float | None, prefix: str = "") -> Text:
    if change is None:
        return Text(" No data", style="blue")
    return Text(f" {prefix}{format_change(change)}", style=change_color(change))


def _asset_text(line: AssetLine, primary: str, *, price_symbol: str | None = None) -> Text:
    symbol = fiat_symbol(primary)
    price_key = line.symbol if price_symbol is None else price_symbol
    return Text(
        f"{line.symbol} - {format_crypto(price_key, line.balance)} @ "
        f"{symbol}{format_fiat(line.unit_price, price_key)} = "
        f"{symbol}{format_fiat(line.fiat_balance)} {primary}"
    )


def render_report(report: DailyReport, console: Console | None = None) -> None:
    console = console or Console()
    primary = report.primary_currency

    console.print()
    console.print("<--------- 🔐 Crypto Balances 🔐 --------->")
    for line in report.assets:
        text = _asset_text(line, primary)
        text.append_text(_change_text(line.change))
        console.print(text)

    if report.pokt_total is not None:
        console.print()
        console.print(_asset_text(report.pokt_total, primary, price_symbol="POKT"))

    if report.exchange is not None:
        console.print()
        console.print("<--------- 🌐 Exchange Balances 🌐 --------->")
        text = _asset_text(report.exchange, primary)
        text.append_text(_change_text(report.exchange.change))
        console.print(text)

    console.print()
    console.print("<--------- 💰 Fiat Total Balances 💰 --------->")
    for total in report.totals:
        symbol = fiat_symbol(total.currency)
        text = Text(
            f"{fiat_emoji(total.currency)} {total.currency} - "
            f"{symbol}{format_fiat(total.total)}"
        )
        text.append_text(_change_text(total.change, prefix=symbol))
        console.print(text)
