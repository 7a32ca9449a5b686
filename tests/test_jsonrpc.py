import pytest

from informer_client.errors import DecodeError, JsonRpcResponseError
from informer_client.jsonrpc import (
    JsonRpcError,
    JsonRpcMessage,
    JsonRpcRequest,
    JsonRpcResponse,
    decode_hex_quantity,
    parse_rpc_error,
)


def test_request_envelope_serialises_with_version_and_id():
    request = JsonRpcRequest(method="eth_getBalance", params=["0xabc", "latest"], id=3)

    assert request.model_dump() == {
        "jsonrpc": "2.0",
        "method": "eth_getBalance",
        "params": ["0xabc", "latest"],
        "id": 3,
    }


def test_structured_error_object_is_parsed():
    response = JsonRpcResponse.model_validate_json(
        '{"jsonrpc":"2.0","id":2,"error":{"code":-32000,"message":"execution reverted"}}'
    )

    assert isinstance(response.error, JsonRpcError)
    with pytest.raises(JsonRpcResponseError) as excinfo:
        response.raise_for_error()
    assert excinfo.value.code == -32000
    assert excinfo.value.request_id == 2
    assert str(excinfo.value) == "JSON-RPC error -32000: execution reverted (id=2)"


def test_string_error_is_parsed_as_message_variant():
    response = JsonRpcResponse.model_validate_json(
        '{"jsonrpc":"2.0","id":1,"error":"rate limited"}'
    )

    assert response.error == JsonRpcMessage(message="rate limited")
    with pytest.raises(JsonRpcResponseError, match="rate limited"):
        response.raise_for_error()


def test_missing_error_means_success():
    response = JsonRpcResponse.model_validate_json('{"jsonrpc":"2.0","id":1,"result":"0x10"}')

    response.raise_for_error()
    assert response.result == "0x10"


def test_unexpected_error_shape_is_rejected():
    with pytest.raises(ValueError):
        parse_rpc_error(42)


def test_decode_hex_quantity_accepts_prefixed_and_bare_values():
    assert decode_hex_quantity("0x1bc16d674ec80000") == 2 * 10**18
    assert decode_hex_quantity("ff") == 255
    assert decode_hex_quantity("0x0") == 0


@pytest.mark.parametrize("value", [None, "", "0xzz"])
def test_decode_hex_quantity_rejects_bad_values(value):
    with pytest.raises(DecodeError):
        decode_hex_quantity(value)
