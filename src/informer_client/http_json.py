"""Typed JSON request helpers built on the retrying transport."""

from __future__ import annotations

import http.client
import json
from typing import Any, Callable, Mapping, TypeVar

from pydantic import TypeAdapter, ValidationError

from informer_client.errors import DecodeError, ResponseNotOKError, TransportError
from informer_client.transport import HttpRequest, RetryTransport

T = TypeVar("T")


def fetch_json(
    transport: RetryTransport,
    url: str,
    headers: Mapping[str, str] | None,
    result_type: type[T] | Any,
) -> T:
    """GET ``url`` and decode a 200 response into ``result_type``."""
    request = HttpRequest(method="GET", url=url, headers=dict(headers or {}))
    return _exchange(transport, request, result_type, _is_get_success)


def submit_json(
    transport: RetryTransport,
    url: str,
    headers: Mapping[str, str] | None,
    body: bytes | Mapping[str, Any] | list[Any],
    result_type: type[T] | Any,
) -> T:
    """POST ``body`` to ``url`` and decode a 2xx response into ``result_type``."""
    if not isinstance(body, (bytes, bytearray)):
        body = encode_body(body)
    request = HttpRequest(
        method="POST", url=url, headers=dict(headers or {}), body=bytes(body)
    )
    return _exchange(transport, request, result_type, _is_post_success)


def encode_body(payload: Mapping[str, Any] | list[Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf8")


def _exchange(
    transport: RetryTransport,
    request: HttpRequest,
    result_type: type[T] | Any,
    is_success: Callable[[int], bool],
) -> T:
    with transport.send(request) as response:
        if not is_success(response.status):
            raise ResponseNotOKError(response.status, response.reason)
        try:
            payload = response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(
                f"Failed to read response body from {request.url}: {exc!r}",
                attempts=1,
            ) from exc
    try:
        return TypeAdapter(result_type).validate_json(payload)
    except ValidationError as exc:
        raise DecodeError(
            f"Failed to decode response from {request.url}: {exc}"
        ) from exc


def _is_get_success(status: int) -> bool:
    return status == 200


def _is_post_success(status: int) -> bool:
    return 200 <= status < 300
