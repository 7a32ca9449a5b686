"""Fiat exchange rates from the CoinMarketCap latest-quotes endpoint."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlencode

from informer_client.constants import CMC_API_KEY_HEADER, CMC_QUOTES_URL
from informer_client.http_json import fetch_json
from informer_client.models import CmcQuotesResponse
from informer_client.transport import RetryTransport
from utils.fan_out import ProgressChannel, SharedResults, run_fan_out


class CmcClient:
    def __init__(
        self,
        api_key: str,
        convert_currencies: Iterable[str],
        transport: RetryTransport,
        quotes_url: str = CMC_QUOTES_URL,
    ) -> None:
        self.convert_currencies = list(convert_currencies)
        self.transport = transport
        self.quotes_url = quotes_url
        self._headers = {"Accept": "application/json", CMC_API_KEY_HEADER: api_key}

    def build_url(self, symbols: Iterable[str], currency: str) -> str:
        query = urlencode(
            {"symbol": ",".join(symbols), "convert": currency}, safe=","
        )
        return f"{self.quotes_url}?{query}"

    def fetch_exchange_rates(
        self, symbols: Iterable[str], currency: str
    ) -> dict[str, float]:
        """Unit prices of ``symbols`` in ``currency``; unquoted assets are left out."""
        response = fetch_json(
            self.transport,
            self.build_url(symbols, currency),
            self._headers,
            CmcQuotesResponse,
        )
        return response.prices(currency)

    def get_all_exchange_rates(
        self,
        symbols: Iterable[str],
        progress: ProgressChannel | None = None,
    ) -> dict[str, dict[str, float]]:
        """Fetch one rate table per target currency concurrently."""
        tracked = list(symbols)
        rates: SharedResults[dict[str, float]] = SharedResults()
        outcome = run_fan_out(
            self.convert_currencies,
            lambda currency: {currency: self.fetch_exchange_rates(tracked, currency)},
            rates,
            progress,
            label="rates",
        )
        outcome.raise_for_error("Exchange rate")
        return rates.snapshot()
