"""API key loading helpers for Bank Informer."""

from __future__ import annotations

import os
import re
from typing import Mapping

import keyring
from keyring.errors import KeyringError

DEFAULT_SERVICE_NAME = "bank-informer"
PATH_API_KEY = "path_api_key"
CMC_API_KEY = "cmc_api_key"
API_KEY_ENV_VARS = {
    PATH_API_KEY: "BANK_INFORMER_PATH_API_KEY",
    CMC_API_KEY: "BANK_INFORMER_CMC_API_KEY",
}
_ENV_PATTERN = re.compile(r"^\$\{([A-Z0-9_]+)\}$")


def resolve_api_key(
    name: str,
    config: Mapping[str, object] | None = None,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> str:
    """Load one API key from config, env vars, or keyring in order."""
    if name not in API_KEY_ENV_VARS:
        raise ValueError(f"Unknown API key name: {name}")
    env_var = API_KEY_ENV_VARS[name]

    value = _resolve_value(config, name)
    if not value:
        value = _clean_value(os.getenv(env_var))
    if not value:
        value = _get_keyring_value(service_name, name)
    if not value:
        raise ValueError(
            f"{name} is missing. Provide it in the config, set {env_var}, "
            f"or store it in the keychain for service '{service_name}'."
        )
    return value


def resolve_api_keys(
    config: Mapping[str, object] | None = None,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> dict[str, str]:
    return {
        name: resolve_api_key(name, config, service_name=service_name)
        for name in API_KEY_ENV_VARS
    }


def store_api_key(
    name: str,
    value: str,
    *,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> None:
    """Store an API key in the OS keychain via keyring."""
    if name not in API_KEY_ENV_VARS:
        raise ValueError(f"Unknown API key name: {name}")
    cleaned = _clean_value(value)
    if not cleaned:
        raise ValueError(f"{name} must be a non-empty string.")
    try:
        keyring.set_password(service_name, name, cleaned)
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to store credentials in the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc


def _resolve_value(config: Mapping[str, object] | None, key: str) -> str | None:
    if not config or key not in config:
        return None
    raw = config.get(key)
    if not isinstance(raw, str):
        return _clean_value(str(raw)) if raw is not None else None
    raw = raw.strip()
    if not raw:
        return None
    match = _ENV_PATTERN.match(raw)
    if match:
        return _clean_value(os.getenv(match.group(1)))
    return _clean_value(raw)


def _clean_value(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _get_keyring_value(service_name: str, username: str) -> str | None:
    try:
        return _clean_value(keyring.get_password(service_name, username))
    except KeyringError as exc:
        raise RuntimeError(
            "Failed to access the OS keychain. "
            "Ensure a keyring backend is available."
        ) from exc
