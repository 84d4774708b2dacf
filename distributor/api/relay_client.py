"""
Client for the Jito block engine bundle relay.

Bundles are sent as a JSON-RPC ``sendBundle`` call. Relay failures are mapped
onto a small error hierarchy so callers can tell rate limits, rejected bundles
and transport problems apart.
"""

import time
import uuid
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from distributor.config import JITO_BUNDLE_API, RELAY_TIMEOUT


class RelayClientError(Exception):
    """Base exception for relay client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class RelayTimeoutError(RelayClientError):
    """Exception raised when the relay does not answer in time."""
    pass


class RelayBadResponseError(RelayClientError):
    """Exception raised when the relay rejects the request."""
    pass


class RelayRateLimitError(RelayBadResponseError):
    """Exception raised when the relay answers 429 or a rate limit error."""
    pass


RATE_LIMIT_INDICATORS = [
    "rate limit",
    "too many requests",
    "throttle",
]


def is_rate_limit_error(error_message: str) -> bool:
    """
    Check if an error message indicates rate limiting.

    Args:
        error_message: The error message to check

    Returns:
        True if this appears to be a rate limiting error
    """
    error_lower = (error_message or "").lower()
    return any(indicator in error_lower for indicator in RATE_LIMIT_INDICATORS)


class RelayClient:
    """Client for the Jito block engine bundle endpoint."""

    def __init__(self, bundle_url: str = JITO_BUNDLE_API, timeout: int = RELAY_TIMEOUT):
        """
        Initialize the relay client.

        Args:
            bundle_url: The block engine bundles endpoint
            timeout: Request timeout in seconds
        """
        self.bundle_url = bundle_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def build_payload(encoded_transactions: List[str]) -> Dict[str, Any]:
        """Build the JSON-RPC sendBundle request body."""
        return {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": "sendBundle",
            "params": [list(encoded_transactions)],
        }

    def send_bundle(self, encoded_transactions: List[str]) -> str:
        """
        Submit a bundle of base58 encoded transactions.

        Args:
            encoded_transactions: Serialized, signed transactions in bundle order

        Returns:
            The relay-assigned bundle id

        Raises:
            RelayRateLimitError: If the relay rate limited the request
            RelayBadResponseError: If the relay rejected the bundle
            RelayTimeoutError: If the request timed out
            RelayClientError: If the relay could not be reached
        """
        payload = self.build_payload(encoded_transactions)
        start_time = time.time()

        try:
            response = self.session.post(self.bundle_url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise RelayTimeoutError(f"Relay request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise RelayClientError(f"Relay request failed: {str(e)}") from e

        elapsed = time.time() - start_time
        logger.debug(
            f"Received relay response in {elapsed:.2f}s",
            extra={"status_code": response.status_code, "elapsed_time": elapsed, "request_id": payload["id"]}
        )

        try:
            data = response.json()
        except ValueError:
            data = response.text

        if response.status_code == 429:
            raise RelayRateLimitError(
                f"Relay returned 429: {response.text}",
                status_code=response.status_code,
                payload=data,
            )

        if response.status_code != 200:
            raise RelayBadResponseError(
                f"Relay returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                payload=data,
            )

        if not isinstance(data, dict):
            raise RelayBadResponseError(
                f"Relay returned a non JSON-RPC body: {response.text}",
                status_code=response.status_code,
                payload=data,
            )

        if data.get("error"):
            error = data["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            error_cls = RelayRateLimitError if is_rate_limit_error(message) else RelayBadResponseError
            raise error_cls(
                f"Relay error: {message}",
                status_code=response.status_code,
                payload=data,
            )

        if "result" not in data:
            raise RelayBadResponseError(
                "Relay response has no result",
                status_code=response.status_code,
                payload=data,
            )

        return data["result"]
