"""Error types raised by the source clients and their HTTP plumbing."""

from __future__ import annotations


class ClientError(Exception):
    """Base exception for source client errors."""


class TransportError(ClientError):
    """Raised when every transport attempt failed at the network level."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class ResponseNotOKError(ClientError):
    """Raised when a response carries a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"Response not OK. {status_code} {reason}")
        self.status_code = status_code
        self.reason = reason


class DecodeError(ClientError):
    """Raised for malformed JSON bodies or unparseable quantities."""


class JsonRpcResponseError(ClientError):
    """Raised when a JSON-RPC response embeds its own error object."""

    def __init__(
        self, message: str, code: int | None = None, request_id: int | None = None
    ) -> None:
        detail = f"JSON-RPC error {code}: {message}" if code is not None else message
        if request_id is not None:
            detail = f"{detail} (id={request_id})"
        super().__init__(detail)
        self.code = code
        self.request_id = request_id
