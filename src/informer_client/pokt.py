"""POKT wallet balance via the PATH API, read with redundant probes."""

from __future__ import annotations

import logging

from informer_client.constants import (
    POKT_ATTEMPTS_PER_PROBE,
    POKT_PROBES,
    POKT_SCALE,
    POKT_SERVICE_ID,
    TARGET_SERVICE_HEADER,
    pokt_balance_url,
)
from informer_client.errors import ClientError
from informer_client.http_json import submit_json
from informer_client.models import PoktBalanceOutput
from informer_client.transport import RetryTransport
from utils.fan_out import ProgressChannel, SharedResults, run_fan_out

LOGGER = logging.getLogger("bank_informer.pokt")

POKT_SYMBOL = "POKT"


class PoktClient:
    """Queries the same balance endpoint several times and keeps the highest.

    Lagging replicas may answer with a stale, lower balance, so the maximum
    observed value is taken as the wallet balance.
    """

    def __init__(
        self,
        path_api_url: str,
        api_key: str,
        wallet_address: str,
        transport: RetryTransport,
        probes: int = POKT_PROBES,
        attempts_per_probe: int = POKT_ATTEMPTS_PER_PROBE,
    ) -> None:
        self.url = pokt_balance_url(path_api_url)
        self.wallet_address = wallet_address
        self.transport = transport
        self.probes = probes
        self.attempts_per_probe = attempts_per_probe
        self._headers = {
            "Content-Type": "application/json",
            TARGET_SERVICE_HEADER: POKT_SERVICE_ID,
            "Authorization": api_key,
        }

    def query_balance(self) -> int:
        """Single balance query in uPOKT."""
        output = submit_json(
            self.transport,
            self.url,
            self._headers,
            {"address": self.wallet_address},
            PoktBalanceOutput,
        )
        return output.balance

    def probe_balance(self) -> int:
        attempt = 1
        while True:
            try:
                return self.query_balance()
            except ClientError as exc:
                if attempt >= self.attempts_per_probe:
                    raise
                LOGGER.debug("POKT probe attempt %d failed: %s", attempt, exc)
            attempt += 1

    def fetch_balance(self) -> float:
        """Run the redundant probes and return the highest balance in POKT.

        Fails only when no probe succeeded.
        """
        observed: SharedResults[int] = SharedResults()
        outcome = run_fan_out(
            range(self.probes),
            lambda probe: {str(probe): self.probe_balance()},
            observed,
            label="pokt-probe",
        )
        values = list(observed.snapshot().values())
        if not values:
            outcome.raise_for_error("POKT balance")
            raise ClientError("POKT balance probes produced no result.")
        if not outcome.ok:
            LOGGER.info(
                "%d of %d POKT probes failed; using the remaining results.",
                len(outcome.errors),
                outcome.total,
            )
        return max(values) / POKT_SCALE

    def fill_balances(
        self,
        balances: SharedResults[float],
        progress: ProgressChannel | None = None,
    ) -> None:
        balances.put(POKT_SYMBOL, self.fetch_balance())
        if progress is not None:
            progress.publish(POKT_SYMBOL)
