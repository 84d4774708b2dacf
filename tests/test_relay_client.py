from unittest.mock import MagicMock

import pytest
import requests

from distributor.api.relay_client import (
    RelayBadResponseError,
    RelayClient,
    RelayClientError,
    RelayRateLimitError,
    RelayTimeoutError,
    is_rate_limit_error,
)

BUNDLE_URL = "https://relay.example/api/v1/bundles"


def _response(status_code, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def client():
    relay = RelayClient(bundle_url=BUNDLE_URL, timeout=5)
    relay.session = MagicMock()
    return relay


class TestRelayPayload:
    """sendBundle wire format."""

    def test_payload_shape(self):
        payload = RelayClient.build_payload(["tx1", "tx2"])

        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "sendBundle"
        assert payload["params"] == [["tx1", "tx2"]]
        assert payload["id"]

    def test_ids_are_unique(self):
        assert RelayClient.build_payload([])["id"] != RelayClient.build_payload([])["id"]

    def test_posts_json_to_bundle_url(self, client):
        client.session.post.return_value = _response(200, {"jsonrpc": "2.0", "result": "bundle-1"})

        assert client.send_bundle(["tx1"]) == "bundle-1"

        args, kwargs = client.session.post.call_args
        assert args[0] == BUNDLE_URL
        assert kwargs["json"]["params"] == [["tx1"]]
        assert kwargs["timeout"] == 5


class TestRelayErrors:
    """Classification of relay failures."""

    def test_http_429_is_rate_limit(self, client):
        client.session.post.return_value = _response(429, text="Too Many Requests")

        with pytest.raises(RelayRateLimitError) as exc_info:
            client.send_bundle(["tx"])

        assert exc_info.value.status_code == 429

    def test_jsonrpc_rate_limit_message(self, client):
        client.session.post.return_value = _response(
            200, {"error": {"code": -32097, "message": "Rate limit exceeded. Limit: 1 per second"}}
        )

        with pytest.raises(RelayRateLimitError):
            client.send_bundle(["tx"])

    def test_http_500_is_bad_response(self, client):
        client.session.post.return_value = _response(500, {"error": "internal"}, text='{"error": "internal"}')

        with pytest.raises(RelayBadResponseError) as exc_info:
            client.send_bundle(["tx"])

        assert not isinstance(exc_info.value, RelayRateLimitError)
        assert exc_info.value.payload == {"error": "internal"}

    def test_jsonrpc_error_is_bad_response(self, client):
        client.session.post.return_value = _response(
            200, {"error": {"code": -32602, "message": "bundle contains an already processed transaction"}}
        )

        with pytest.raises(RelayBadResponseError) as exc_info:
            client.send_bundle(["tx"])

        assert not isinstance(exc_info.value, RelayRateLimitError)

    def test_digits_in_error_message_are_not_rate_limit(self, client):
        client.session.post.return_value = _response(
            200, {"error": {"message": "transaction 4Zk429xQ already processed"}}
        )

        with pytest.raises(RelayBadResponseError) as exc_info:
            client.send_bundle(["tx"])

        assert not isinstance(exc_info.value, RelayRateLimitError)

    def test_missing_result(self, client):
        client.session.post.return_value = _response(200, {"jsonrpc": "2.0"})

        with pytest.raises(RelayBadResponseError):
            client.send_bundle(["tx"])

    def test_timeout(self, client):
        client.session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(RelayTimeoutError):
            client.send_bundle(["tx"])

    def test_connection_error(self, client):
        client.session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(RelayClientError):
            client.send_bundle(["tx"])


class TestRateLimitDetection:

    def test_indicators(self):
        assert is_rate_limit_error("Too Many Requests")
        assert is_rate_limit_error("Rate limit exceeded")
        assert is_rate_limit_error("Request throttled")
        assert not is_rate_limit_error("slot 4290 already processed")
        assert not is_rate_limit_error("bundle rejected")
        assert not is_rate_limit_error("")
