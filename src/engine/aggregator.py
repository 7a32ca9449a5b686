"""Drives the balance and rate rounds and builds the portfolio snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from informer_client.cmc import CmcClient
from informer_client.eth import EthClient
from informer_client.pokt import POKT_SYMBOL, PoktClient
from utils.fan_out import ProgressChannel, SharedResults

LOGGER = logging.getLogger("bank_informer.aggregator")


@dataclass(frozen=True)
class PortfolioSnapshot:
    balances: dict[str, float]
    exchange_rates: dict[str, dict[str, float]]
    fiat_values: dict[str, float] = field(default_factory=dict)


def compute_fiat_values(
    balances: Mapping[str, float],
    exchange_rates: Mapping[str, Mapping[str, float]],
) -> dict[str, float]:
    """Total per fiat currency of cent-rounded asset values.

    Assets without a quoted rate are skipped.
    """
    totals: dict[str, float] = {}
    for currency, rates in exchange_rates.items():
        total = 0.0
        for symbol, balance in balances.items():
            rate = rates.get(symbol)
            if rate is None:
                continue
            total += round(balance * rate, 2)
        totals[currency] = total
    return totals


class PortfolioAggregator:
    def __init__(
        self,
        eth_client: EthClient,
        pokt_client: PoktClient,
        cmc_client: CmcClient,
        tracked_assets: Iterable[str],
        *,
        batch_eth: bool = False,
    ) -> None:
        self.eth_client = eth_client
        self.pokt_client = pokt_client
        self.cmc_client = cmc_client
        self.tracked_assets = list(dict.fromkeys(tracked_assets))
        self.batch_eth = batch_eth

    @property
    def tracks_pokt(self) -> bool:
        return POKT_SYMBOL in self.tracked_assets

    def expected_progress(self) -> int:
        """Number of progress tokens a successful ``collect`` publishes."""
        owned = len(self.eth_client.owned_assets(self.tracked_assets))
        return (
            owned
            + (1 if self.tracks_pokt else 0)
            + len(self.cmc_client.convert_currencies)
        )

    def collect(self, progress: ProgressChannel | None = None) -> PortfolioSnapshot:
        """Run the ETH, POKT and rate rounds in order.

        Any failed round aborts the run with ``AggregationError``; a partially
        filled balance map is never returned.
        """
        balances: SharedResults[float] = SharedResults.seeded(self.tracked_assets, 0.0)

        LOGGER.debug("Fetching ETH balances for %s", self.tracked_assets)
        self.eth_client.fill_balances(balances, progress, batch=self.batch_eth)

        if self.tracks_pokt:
            LOGGER.debug("Fetching POKT balance")
            self.pokt_client.fill_balances(balances, progress)

        held = balances.snapshot()
        rates = self.cmc_client.get_all_exchange_rates(held, progress)
        return PortfolioSnapshot(
            balances=held,
            exchange_rates=rates,
            fiat_values=compute_fiat_values(held, rates),
        )
