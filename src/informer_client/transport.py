"""Retrying HTTP transport shared by every source client."""

from __future__ import annotations

import http.client
import logging
import ssl
import time
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, BinaryIO, Callable, Mapping
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from informer_client.constants import (
    DEFAULT_BACKOFF_UNIT,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
)
from informer_client.errors import TransportError

LOGGER = logging.getLogger("bank_informer.transport")

_NETWORK_ERRORS = (OSError, http.client.HTTPException)


@dataclass
class HttpRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | BinaryIO | None = None


class HttpResponse:
    """Response handle returned by the transport.

    The underlying stream stays open until ``close()`` is called, so callers
    should use the response as a context manager.
    """

    def __init__(
        self,
        status: int,
        reason: str,
        headers: Mapping[str, str] | None,
        stream: Any,
    ) -> None:
        self.status = status
        self.reason = reason or _status_phrase(status)
        self.headers = headers or {}
        self._stream = stream
        self.closed = False

    @classmethod
    def from_http_error(cls, exc: HTTPError) -> "HttpResponse":
        return cls(exc.code, str(exc.reason or ""), exc.headers, exc if exc.fp else None)

    def read(self) -> bytes:
        if self._stream is None:
            return b""
        return self._stream.read()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._stream is not None and hasattr(self._stream, "close"):
            self._stream.close()

    def __enter__(self) -> "HttpResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RetryTransport:
    """Executes requests with bounded retries and quadratic backoff.

    A response is accepted once the call succeeds with a status below 500.
    Network errors and 5xx statuses are retried until ``retries`` extra
    attempts are used up. When the final attempt raised, the last network
    error is raised as ``TransportError``; a final 5xx response is returned
    as-is and left for the caller to interpret.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        backoff_unit: float = DEFAULT_BACKOFF_UNIT,
        sleep: Callable[[float], None] | None = None,
        verify_ssl: bool = True,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be non-negative.")
        self.timeout = timeout
        self.retries = retries
        self.backoff_unit = backoff_unit
        self._sleep = sleep or time.sleep
        self._ssl_context = ssl_context
        if ssl_context is None and verify_ssl:
            self._ssl_context = ssl.create_default_context()
        elif ssl_context is None and not verify_ssl:
            self._ssl_context = ssl._create_unverified_context()
            LOGGER.warning(
                "SSL certificate verification is DISABLED. "
                "Man-in-the-middle attacks are possible."
            )

    def send(self, request: HttpRequest) -> HttpResponse:
        body = _buffer_body(request.body)
        last_error: BaseException | None = None

        for attempt in range(self.retries + 1):
            try:
                response = self._send_once(request, body)
            except _NETWORK_ERRORS as exc:
                last_error = exc
                LOGGER.debug(
                    "%s %s attempt %d failed: %s",
                    request.method.upper(),
                    request.url,
                    attempt + 1,
                    exc,
                )
            else:
                if response.status < 500 or attempt == self.retries:
                    return response
                LOGGER.debug(
                    "%s %s attempt %d returned %d",
                    request.method.upper(),
                    request.url,
                    attempt + 1,
                    response.status,
                )
                response.close()

            if attempt < self.retries:
                self._sleep(self._compute_backoff(attempt))

        raise TransportError(
            f"Network error after {self.retries + 1} attempts: {last_error}",
            attempts=self.retries + 1,
        ) from last_error

    def _send_once(self, request: HttpRequest, body: bytes | None) -> HttpResponse:
        http_request = Request(
            url=request.url,
            method=request.method.upper(),
            headers=dict(request.headers),
            data=body,
        )
        try:
            raw = urlopen(http_request, timeout=self.timeout, context=self._ssl_context)
        except HTTPError as exc:
            return HttpResponse.from_http_error(exc)
        status = getattr(raw, "status", None) or raw.getcode()
        return HttpResponse(status, getattr(raw, "reason", ""), raw.headers, raw)

    def _compute_backoff(self, attempt: int) -> float:
        return attempt * attempt * self.backoff_unit


def _buffer_body(body: bytes | BinaryIO | None) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    return body.read()


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""
