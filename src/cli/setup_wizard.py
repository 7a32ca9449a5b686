"""First-run interactive creation of the YAML configuration file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable

import yaml

from utils.config import split_codes

LOGGER = logging.getLogger("bank_informer.setup")

REQUIRED_PROMPTS = (
    ("path_api_url", "🔗 Enter the PATH API URL (e.g., http://localhost:3070): "),
    ("path_api_key", "🔑 Enter your PATH API KEY (leave blank to use env/keychain): "),
    ("eth_wallet_address", "💼 Enter your Ethereum Wallet Address: "),
    ("pokt_wallet_address", "🎒 Enter your POKT Wallet Address: "),
    ("cmc_api_key", "🔑 Enter the CoinMarketCap API KEY (leave blank to use env/keychain): "),
)

OPTIONAL_PROMPTS = (
    ("crypto_fiat_conversion", "💱 Fiat currency to convert crypto balances to (default: USD): "),
    ("convert_currencies", "🔄 Comma-separated list of fiat currencies (default: USD): "),
    ("crypto_values", "💰 Comma-separated list of cryptocurrencies (default: USDC,ETH,POKT): "),
    ("pokt_exchange_amount", "🌐 POKT held on exchanges (default: 0): "),
)

_LIST_KEYS = {"convert_currencies", "crypto_values"}


def _confirm(answer: str) -> bool:
    return answer.strip().lower() in {"y", "yes"}


def prompt_config(
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> dict[str, Any] | None:
    """Collect configuration values interactively; None when the user declines."""
    answer = input_fn(
        "👋 Welcome to Bank Informer! No configuration file was found.\n"
        "❓ Would you like to create one now? (yes/no): "
    )
    if not _confirm(answer):
        return None

    config: dict[str, Any] = {}
    for key, prompt in REQUIRED_PROMPTS:
        value = input_fn(prompt).strip()
        if value:
            config[key] = value

    if _confirm(input_fn("💱 Set optional currency variables? (yes/no): ")):
        for key, prompt in OPTIONAL_PROMPTS:
            value = input_fn(prompt).strip()
            if not value:
                continue
            if key in _LIST_KEYS:
                config[key] = split_codes(value)
            elif key == "pokt_exchange_amount":
                try:
                    config[key] = float(value)
                except ValueError:
                    output_fn(f"Ignoring invalid exchange amount: {value}")
            else:
                config[key] = value.upper()
    return config


def write_config(config: dict[str, Any], config_path: Path) -> Path:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.safe_dump(config, sort_keys=False, allow_unicode=True), encoding="utf-8"
    )
    os.chmod(config_path, 0o600)
    LOGGER.info("Wrote configuration file %s", config_path)
    return config_path


def run_setup(
    config_path: Path,
    *,
    force: bool = False,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> Path | None:
    """Create ``config_path`` interactively unless it already exists."""
    if config_path.exists() and not force:
        output_fn(f"Configuration file already exists at {config_path}")
        return None
    config = prompt_config(input_fn, output_fn)
    if config is None:
        output_fn("Setup cancelled.")
        return None
    write_config(config, config_path)
    output_fn(f"YAML configuration file has been created at {config_path}")
    return config_path
