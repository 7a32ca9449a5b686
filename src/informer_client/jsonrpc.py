"""JSON-RPC 2.0 envelopes used for Ethereum chain calls."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from informer_client.errors import DecodeError, JsonRpcResponseError


class JsonRpcRequest(BaseModel):
    """Request envelope. ``id`` is used to match batch responses."""

    model_config = ConfigDict(frozen=True)

    jsonrpc: str = "2.0"
    method: str
    params: list[Any]
    id: int = 1


class JsonRpcError(BaseModel):
    """Structured error object (``{"code": ..., "message": ...}``)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    code: int | None = None
    message: str = ""
    data: Any = None


class JsonRpcMessage(BaseModel):
    """Error sent by some gateways as a bare string."""

    model_config = ConfigDict(frozen=True)

    message: str


RpcError = JsonRpcError | JsonRpcMessage


def parse_rpc_error(raw: Any) -> RpcError | None:
    """Map the polymorphic ``error`` field onto one of its variants."""
    if raw is None:
        return None
    if isinstance(raw, (JsonRpcError, JsonRpcMessage)):
        return raw
    if isinstance(raw, Mapping):
        return JsonRpcError.model_validate(raw)
    if isinstance(raw, str):
        return JsonRpcMessage(message=raw)
    raise ValueError(f"unexpected error type: {type(raw).__name__}")


class JsonRpcResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | None = None
    jsonrpc: str = "2.0"
    result: str | None = None
    error: JsonRpcError | JsonRpcMessage | None = None

    @field_validator("error", mode="before")
    @classmethod
    def validate_error(cls, v: Any) -> RpcError | None:
        return parse_rpc_error(v)

    def raise_for_error(self) -> None:
        if self.error is None:
            return
        code = self.error.code if isinstance(self.error, JsonRpcError) else None
        raise JsonRpcResponseError(
            self.error.message or "unknown error", code=code, request_id=self.id
        )


def decode_hex_quantity(value: str | None) -> int:
    """Parse a ``0x``-prefixed hex string into an integer."""
    if not value:
        raise DecodeError("empty result field")
    digits = value[2:] if value[:2].lower() == "0x" else value
    try:
        return int(digits, 16)
    except ValueError as exc:
        raise DecodeError(f"failed to parse hex value: {value!r}") from exc
