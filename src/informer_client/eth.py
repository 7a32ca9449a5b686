"""Ethereum wallet balances over JSON-RPC (native ETH and ERC-20 tokens)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from informer_client.constants import (
    ERC20_BALANCE_OF_SELECTOR,
    ETH_MAX_ATTEMPTS,
    TARGET_SERVICE_HEADER,
)
from informer_client.errors import ClientError, DecodeError
from informer_client.http_json import submit_json
from informer_client.jsonrpc import JsonRpcRequest, JsonRpcResponse, decode_hex_quantity
from informer_client.transport import RetryTransport
from utils.fan_out import ProgressChannel, SharedResults, run_fan_out

LOGGER = logging.getLogger("bank_informer.eth")


class EthAsset(ABC):
    """An asset held in an Ethereum wallet."""

    symbol: str
    decimals: int

    @property
    def scale(self) -> int:
        return 10**self.decimals

    @abstractmethod
    def build_request(self, wallet_address: str, request_id: int = 1) -> JsonRpcRequest:
        """Return the JSON-RPC call that reads this asset's raw balance."""


@dataclass(frozen=True)
class NativeEther(EthAsset):
    symbol: str = "ETH"
    decimals: int = 18

    def build_request(self, wallet_address: str, request_id: int = 1) -> JsonRpcRequest:
        return JsonRpcRequest(
            method="eth_getBalance", params=[wallet_address, "latest"], id=request_id
        )


@dataclass(frozen=True)
class Erc20Token(EthAsset):
    symbol: str
    contract: str
    decimals: int

    def build_request(self, wallet_address: str, request_id: int = 1) -> JsonRpcRequest:
        owner = wallet_address.removeprefix("0x").rjust(64, "0")
        call = {"to": self.contract, "data": f"{ERC20_BALANCE_OF_SELECTOR}{owner}"}
        return JsonRpcRequest(method="eth_call", params=[call, "latest"], id=request_id)


ETH_ASSETS: dict[str, EthAsset] = {
    "ETH": NativeEther(),
    "USDC": Erc20Token(
        symbol="USDC",
        contract="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eb48",
        decimals=6,
    ),
    "WPOKT": Erc20Token(
        symbol="WPOKT",
        contract="0x67F4C72a50f8Df6487720261E188F2abE83F57D7",
        decimals=6,
    ),
    "WBTC": Erc20Token(
        symbol="WBTC",
        contract="0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",
        decimals=8,
    ),
}


class EthClient:
    """Reads wallet balances for the assets in ``ETH_ASSETS``."""

    def __init__(
        self,
        rpc_url: str,
        wallet_address: str,
        transport: RetryTransport,
        api_key: str | None = None,
        service_id: str | None = None,
        max_attempts: int = ETH_MAX_ATTEMPTS,
    ) -> None:
        self.rpc_url = rpc_url
        self.wallet_address = wallet_address
        self.transport = transport
        self.max_attempts = max_attempts
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = api_key
        if service_id:
            self._headers[TARGET_SERVICE_HEADER] = service_id

    @staticmethod
    def owns(symbol: str) -> bool:
        return symbol in ETH_ASSETS

    def owned_assets(self, symbols: Iterable[str]) -> list[str]:
        return [symbol for symbol in symbols if self.owns(symbol)]

    def fetch_balance(self, symbol: str) -> float:
        asset = _asset_for(symbol)
        request = asset.build_request(self.wallet_address)
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                response = submit_json(
                    self.transport,
                    self.rpc_url,
                    self._headers,
                    request.model_dump(),
                    JsonRpcResponse,
                )
                response.raise_for_error()
                return decode_hex_quantity(response.result) / asset.scale
            except ClientError as exc:
                last_error = exc
                LOGGER.debug(
                    "%s balance attempt %d failed: %s", symbol, attempt + 1, exc
                )
        raise ClientError(
            f"failed to get wallet balance after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def fetch_balances(self, symbols: Iterable[str]) -> dict[str, float]:
        """Read several balances with one batch request.

        Responses are matched back to assets by request id. Any embedded
        error fails the whole batch.
        """
        assets = [_asset_for(symbol) for symbol in symbols]
        if not assets:
            return {}
        requests = {
            index: asset.build_request(self.wallet_address, request_id=index)
            for index, asset in enumerate(assets, start=1)
        }
        payload = [request.model_dump() for request in requests.values()]
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                responses = submit_json(
                    self.transport,
                    self.rpc_url,
                    self._headers,
                    payload,
                    list[JsonRpcResponse],
                )
                return self._demultiplex(assets, responses)
            except ClientError as exc:
                last_error = exc
                LOGGER.debug("Batch balance attempt %d failed: %s", attempt + 1, exc)
        raise ClientError(
            f"failed to get wallet balances after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def fill_balances(
        self,
        balances: SharedResults[float],
        progress: ProgressChannel | None = None,
        *,
        batch: bool = False,
    ) -> None:
        owned = self.owned_assets(balances.keys())
        if batch:
            outcome = run_fan_out(
                [tuple(owned)] if owned else [],
                self.fetch_balances,
                balances,
                progress,
                label="eth-batch",
            )
        else:
            outcome = run_fan_out(
                owned,
                lambda symbol: {symbol: self.fetch_balance(symbol)},
                balances,
                progress,
                label="eth",
            )
        outcome.raise_for_error("ETH balance")

    @staticmethod
    def _demultiplex(
        assets: list[EthAsset], responses: list[JsonRpcResponse]
    ) -> dict[str, float]:
        by_id = {response.id: response for response in responses}
        balances: dict[str, float] = {}
        for index, asset in enumerate(assets, start=1):
            response = by_id.get(index)
            if response is None:
                raise DecodeError(f"missing batch response for id {index}")
            response.raise_for_error()
            balances[asset.symbol] = decode_hex_quantity(response.result) / asset.scale
        return balances


def _asset_for(symbol: str) -> EthAsset:
    try:
        return ETH_ASSETS[symbol]
    except KeyError:
        raise ValueError(f"Unsupported Ethereum asset: {symbol}") from None
