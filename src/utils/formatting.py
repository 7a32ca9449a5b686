"""Display helpers for fiat and crypto amounts."""

from __future__ import annotations

FIAT_SYMBOLS: dict[str, str] = {
    "EUR": "€",
    "CAD": "$",
    "USD": "$",
    "JPY": "¥",
    "GBP": "£",
    "AUD": "$",
    "CHF": "₣",
    "CNY": "¥",
    "SEK": "kr",
    "NZD": "$",
    "ZAR": "R",
    "INR": "₹",
    "RUB": "₽",
    "BRL": "R$",
    "KRW": "₩",
    "IDR": "Rp",
    "MXN": "$",
    "ARS": "$",
    "MYR": "RM",
    "PHP": "₱",
    "PLN": "zł",
    "THB": "฿",
    "TRY": "₺",
    "VND": "₫",
}

FIAT_EMOJIS: dict[str, str] = {
    "EUR": "🐗",
    "CAD": "🦆",
    "USD": "🦅",
    "JPY": "🦊",
    "GBP": "🦡",
    "AUD": "🦘",
    "CHF": "🐄",
    "CNY": "🐼",
    "SEK": "🦌",
    "NZD": "🥝",
    "ZAR": "🦓",
    "INR": "🐘",
    "RUB": "🐻",
    "BRL": "🦜",
    "KRW": "🐕",
    "IDR": "🦎",
    "MXN": "🦂",
    "ARS": "🦙",
    "MYR": "🦋",
    "PHP": "🦈",
    "PLN": "🦉",
    "THB": "🐅",
    "TRY": "🐐",
    "VND": "🐊",
}

CRYPTO_DECIMALS: dict[str, int] = {
    "POKT": 0,
    "WPOKT": 0,
    "USDC": 2,
    "USDT": 2,
    "ETH": 6,
    "WBTC": 6,
}

# Unit prices that need more precision than cents.
FIAT_PRICE_DECIMALS: dict[str, int] = {"POKT": 4}

DEFAULT_DECIMALS = 2
CHANGE_TOLERANCE = 0.01


def is_supported_currency(currency: str) -> bool:
    return currency in FIAT_SYMBOLS


def fiat_symbol(currency: str) -> str:
    return FIAT_SYMBOLS.get(currency, "")


def fiat_emoji(currency: str) -> str:
    return FIAT_EMOJIS.get(currency, "")


def format_crypto(symbol: str, amount: float) -> str:
    decimals = CRYPTO_DECIMALS.get(symbol, DEFAULT_DECIMALS)
    return f"{amount:,.{decimals}f}"


def format_fiat(amount: float, symbol: str = "") -> str:
    """Format a fiat amount; ``symbol`` selects per-asset unit price precision."""
    decimals = FIAT_PRICE_DECIMALS.get(symbol, DEFAULT_DECIMALS)
    return f"{amount:,.{decimals}f}"


def format_change(difference: float) -> str:
    if difference == 0:
        return "0.00"
    return format_fiat(difference)


def change_color(difference: float) -> str:
    """Rich colour for a day-over-day change; tiny moves count as flat."""
    if abs(difference) < CHANGE_TOLERANCE:
        return "blue"
    if difference < 0:
        return "red"
    return "green"
