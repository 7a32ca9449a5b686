"""Configuration file loading, defaults and well-known paths."""

from __future__ import annotations

import importlib.util
import json
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from informer_client.constants import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    ETH_SERVICE_ID,
    POKT_PROBES,
    default_eth_rpc_url,
)
from utils.config_validator import validate_app_config
from utils.credentials import CMC_API_KEY, PATH_API_KEY, resolve_api_keys

HOME_ENV = "BANK_INFORMER_HOME"
APP_DIRNAME = "bank-informer"
CONFIG_FILENAME = ".bankinformer.config.yaml"
DB_DIRNAME = "db"
DB_FILENAME = "samples.sqlite3"
CSV_FILENAME = "crypto_values.csv"

SUPPORTED_FORMATS = (".json", ".toml", ".yaml", ".yml")

DEFAULTS: dict[str, Any] = {
    "pokt_exchange_amount": 0,
    "crypto_fiat_conversion": "USD",
    "convert_currencies": ["USD"],
    "crypto_values": ["USDC", "ETH", "POKT"],
    "eth_service_id": ETH_SERVICE_ID,
    "eth_batch_requests": False,
    "http_timeout_sec": DEFAULT_TIMEOUT,
    "http_retries": DEFAULT_RETRIES,
    "pokt_probes": POKT_PROBES,
}

_LIST_FIELDS = ("convert_currencies", "crypto_values")


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    path_api_url: str
    path_api_key: str
    eth_wallet_address: str
    pokt_wallet_address: str
    cmc_api_key: str
    pokt_exchange_amount: float = 0
    crypto_fiat_conversion: str = "USD"
    convert_currencies: list[str] = Field(default_factory=lambda: ["USD"])
    crypto_values: list[str] = Field(default_factory=lambda: ["USDC", "ETH", "POKT"])
    eth_rpc_url: str
    eth_service_id: str | None = ETH_SERVICE_ID
    eth_batch_requests: bool = False
    http_timeout_sec: float = DEFAULT_TIMEOUT
    http_retries: int = DEFAULT_RETRIES
    pokt_probes: int = POKT_PROBES


def app_home() -> Path:
    override = os.getenv(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / APP_DIRNAME


def default_config_path() -> Path:
    return app_home() / CONFIG_FILENAME


def default_db_path() -> Path:
    return app_home() / DB_DIRNAME / DB_FILENAME


def default_csv_path() -> Path:
    return app_home() / CSV_FILENAME


def load_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. Run 'bank-informer setup' or pass --config."
        )
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        supported = ", ".join(SUPPORTED_FORMATS)
        raise ValueError(
            f"Unsupported config format '{suffix}'. Supported formats: {supported}."
        )
    try:
        if suffix == ".json":
            data = json.loads(config_path.read_text(encoding="utf-8"))
        elif suffix == ".toml":
            data = load_toml(config_path)
        else:
            data = load_yaml(config_path)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config file {config_path}: {exc}. Validate the file format."
        ) from exc
    except (RuntimeError, ValueError):
        raise
    except Exception as exc:
        raise RuntimeError(
            f"Failed to parse config file {config_path}: {exc}."
        ) from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file {config_path} must contain a JSON/TOML/YAML object mapping."
        )
    return data


def load_toml(config_path: Path) -> dict[str, Any]:
    if sys.version_info >= (3, 11):
        import tomllib  # type: ignore[attr-defined]

        return tomllib.loads(config_path.read_text(encoding="utf-8"))
    if importlib.util.find_spec("tomli") is None:
        raise RuntimeError(
            "TOML config parsing requires Python 3.11+ or the 'tomli' package. Install tomli or use JSON/YAML."
        )
    import tomli  # type: ignore[import-not-found]

    return tomli.loads(config_path.read_text(encoding="utf-8"))


def load_yaml(config_path: Path) -> dict[str, Any]:
    if importlib.util.find_spec("yaml") is None:
        raise RuntimeError(
            "YAML config parsing requires PyYAML. Install it with 'pip install pyyaml' or use JSON/TOML."
        )
    import yaml  # type: ignore[import-not-found]

    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"YAML config file {config_path} must contain a mapping at the top level."
        )
    return data


def split_codes(value: Any) -> list[str]:
    """Normalise a list or comma separated string into unique upper-case codes."""
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        raise ValueError(f"Expected a list or comma separated string, got: {value!r}")
    codes = [part.strip().upper() for part in parts if part.strip()]
    return list(dict.fromkeys(codes))


def normalize_config(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Apply defaults and normalise list fields; values present in ``raw`` win."""
    config: dict[str, Any] = {
        key: value for key, value in raw.items() if value is not None and value != ""
    }
    for key, value in DEFAULTS.items():
        config.setdefault(key, value)
    for key in _LIST_FIELDS:
        codes = split_codes(config[key])
        config[key] = codes or list(DEFAULTS[key])
    config["crypto_fiat_conversion"] = str(config["crypto_fiat_conversion"]).strip().upper()
    if isinstance(config.get("path_api_url"), str):
        config["path_api_url"] = config["path_api_url"].strip().rstrip("/")
    return config


def build_app_config(
    raw: Mapping[str, Any], *, resolve_keys: bool = True
) -> AppConfig:
    config = normalize_config(raw)
    validate_app_config(config)
    config.setdefault("eth_rpc_url", default_eth_rpc_url(config["path_api_url"]))
    if resolve_keys:
        config.update(resolve_api_keys(config))
    else:
        config.setdefault(PATH_API_KEY, "")
        config.setdefault(CMC_API_KEY, "")
    return AppConfig(**config)


def load_app_config(config_path: Path | None = None) -> AppConfig:
    """Read, default, validate and resolve credentials for the app config."""
    path = config_path or default_config_path()
    return build_app_config(load_config(path))
