"""Configuration validation utilities for bank informer."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from informer_client.eth import ETH_ASSETS
from informer_client.pokt import POKT_SYMBOL
from utils.formatting import is_supported_currency

REQUIRED_FIELDS = ("path_api_url", "eth_wallet_address", "pokt_wallet_address")
SUPPORTED_ASSETS = frozenset(ETH_ASSETS) | {POKT_SYMBOL}


class ConfigValidationError(ValueError):
    """Raised when configuration validation fails."""


def validate_required(config: dict[str, Any], fields: Iterable[str]) -> None:
    for field in fields:
        value = config.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ConfigValidationError(f"Missing required field: {field}")


def validate_eth_wallet(config: dict[str, Any], field: str = "eth_wallet_address") -> None:
    address = config.get(field)
    if not isinstance(address, str) or not re.match(r"^0x[0-9a-fA-F]{40}$", address):
        raise ConfigValidationError(
            f"{field} must be a 0x-prefixed 40 hex digit address, got: {address}"
        )


def validate_pokt_wallet(config: dict[str, Any], field: str = "pokt_wallet_address") -> None:
    address = config.get(field)
    if not isinstance(address, str) or not re.match(r"^[0-9a-fA-F]{40}$", address):
        raise ConfigValidationError(
            f"{field} must be a 40 hex digit address, got: {address}"
        )


def validate_non_negative_decimal(
    config: dict[str, Any], field: str, *, required: bool = True
) -> None:
    """Validate that a field is a non-negative decimal value."""
    if field not in config:
        if required:
            raise ConfigValidationError(f"Missing required field: {field}")
        return

    value = config[field]
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ConfigValidationError(
            f"{field} must be a valid number, got: {value}"
        ) from exc

    if decimal_value < 0:
        raise ConfigValidationError(
            f"{field} must be non-negative, got: {decimal_value}"
        )


def validate_positive_decimal(
    config: dict[str, Any], field: str, *, required: bool = True
) -> None:
    if field not in config:
        if required:
            raise ConfigValidationError(f"Missing required field: {field}")
        return

    value = config[field]
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ConfigValidationError(
            f"{field} must be a valid number, got: {value}"
        ) from exc

    if decimal_value <= 0:
        raise ConfigValidationError(f"{field} must be positive, got: {decimal_value}")


def validate_positive_integer(
    config: dict[str, Any], field: str, *, required: bool = True, minimum: int = 1
) -> None:
    """Validate that a field is an integer no lower than ``minimum``."""
    if field not in config:
        if required:
            raise ConfigValidationError(f"Missing required field: {field}")
        return

    value = config[field]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigValidationError(
            f"{field} must be an integer, got: {type(value).__name__}"
        )
    if value < minimum:
        raise ConfigValidationError(f"{field} must be >= {minimum}, got: {value}")


def validate_url(config: dict[str, Any], field: str) -> None:
    """Validate that a URL field is properly formatted."""
    if field not in config:
        return

    url = config[field]
    if not isinstance(url, str) or not url.strip():
        raise ConfigValidationError(f"{field} must be a non-empty string")

    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ConfigValidationError(
            f"{field} must start with http:// or https://, got: {url}"
        )


def validate_currencies(primary: str, currencies: list[str]) -> None:
    if not currencies:
        raise ConfigValidationError("convert_currencies must not be empty")
    for currency in [primary, *currencies]:
        if not is_supported_currency(currency):
            raise ConfigValidationError(f"Unsupported fiat currency: {currency}")
    if primary not in currencies:
        raise ConfigValidationError(
            f"crypto_fiat_conversion {primary} must be listed in convert_currencies"
        )


def validate_assets(assets: list[str]) -> None:
    if not assets:
        raise ConfigValidationError("crypto_values must not be empty")
    unsupported = [asset for asset in assets if asset not in SUPPORTED_ASSETS]
    if unsupported:
        supported = ", ".join(sorted(SUPPORTED_ASSETS))
        raise ConfigValidationError(
            f"Unsupported crypto values {', '.join(unsupported)}; "
            f"choose from [{supported}]"
        )


def validate_app_config(config: dict[str, Any]) -> None:
    """
    Validate a raw bank informer configuration mapping.

    List fields are expected to be normalised to lists of upper-case codes.

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigValidationError("Configuration must be a dictionary")
    if not config:
        raise ConfigValidationError("Configuration cannot be empty")

    validate_required(config, REQUIRED_FIELDS)
    validate_url(config, "path_api_url")
    validate_url(config, "eth_rpc_url")
    validate_eth_wallet(config)
    validate_pokt_wallet(config)
    validate_non_negative_decimal(config, "pokt_exchange_amount", required=False)
    validate_positive_decimal(config, "http_timeout_sec", required=False)
    validate_positive_integer(config, "http_retries", required=False, minimum=0)
    validate_positive_integer(config, "pokt_probes", required=False)
    if "eth_batch_requests" in config and not isinstance(
        config["eth_batch_requests"], bool
    ):
        raise ConfigValidationError("eth_batch_requests must be a boolean")

    validate_currencies(
        config.get("crypto_fiat_conversion", "USD"),
        list(config.get("convert_currencies", ["USD"])),
    )
    validate_assets(list(config.get("crypto_values", [])))
