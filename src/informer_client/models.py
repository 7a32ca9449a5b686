"""Wire models for the REST balance and exchange-rate sources."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PoktBalanceOutput(BaseModel):
    """Response of the PATH ``/v1/query/balance`` endpoint (uPOKT)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    balance: int

    @field_validator("balance")
    @classmethod
    def validate_balance(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Balance cannot be negative")
        return v


class CmcQuote(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    price: float | None = None


class CmcAsset(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    symbol: str = ""
    quote: dict[str, CmcQuote] = Field(default_factory=dict)


class CmcQuotesResponse(BaseModel):
    """Latest quotes keyed by asset symbol."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    data: dict[str, CmcAsset] = Field(default_factory=dict)

    def prices(self, currency: str) -> dict[str, float]:
        prices: dict[str, float] = {}
        for symbol, asset in self.data.items():
            quote = asset.quote.get(currency)
            if quote is None or quote.price is None:
                continue
            prices[symbol] = quote.price
        return prices
