"""
Bundle submission with rate limit backoff.
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from distributor.api.relay_client import RelayClient, RelayClientError, RelayRateLimitError
from distributor.config import MAX_SUBMIT_ATTEMPTS, RATE_LIMIT_MAX_DELAY, RATE_LIMIT_MIN_DELAY
from distributor.exceptions import RetryExhaustedError, SubmissionError
from distributor.solana.models import Bundle, SubmissionResult


def next_delay(attempt: int) -> float:
    """
    Seconds to wait after the given rate limited attempt (1-based).

    Doubles from RATE_LIMIT_MIN_DELAY and is capped at RATE_LIMIT_MAX_DELAY:
    30, 60, 120, 240, 300, 300, ...
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(RATE_LIMIT_MIN_DELAY * (2 ** (attempt - 1)), RATE_LIMIT_MAX_DELAY)


class BundleSubmitter:
    """
    Submits bundles to the relay, retrying only when rate limited.
    """

    def __init__(
        self,
        relay_client: RelayClient,
        retry_on_rate_limit: bool = True,
        max_attempts: int = MAX_SUBMIT_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize the submitter.

        Args:
            relay_client: Client for the bundle relay
            retry_on_rate_limit: Retry rate limited submissions with backoff
            max_attempts: Maximum number of relay calls per bundle
            sleep: Coroutine used to wait between attempts
        """
        self.relay_client = relay_client
        self.max_attempts = max_attempts if retry_on_rate_limit else 1
        self.sleep = sleep

    async def submit(self, bundle: Bundle) -> SubmissionResult:
        """
        Submit one bundle.

        Args:
            bundle: Closed, signed bundle

        Returns:
            SubmissionResult carrying the relay bundle id

        Raises:
            RetryExhaustedError: If every attempt was rate limited
            SubmissionError: On any other relay or transport failure
        """
        encoded = bundle.encode()
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                bundle_id = await asyncio.to_thread(self.relay_client.send_bundle, encoded)
            except RelayRateLimitError as e:
                last_error = e
                if attempt >= self.max_attempts:
                    break
                delay = next_delay(attempt)
                logger.warning(
                    f"Rate limit exceeded. Retrying in {delay} seconds... (attempt {attempt}/{self.max_attempts})",
                    extra={"bundle_index": bundle.index, "attempt": attempt, "backoff": delay}
                )
                await self.sleep(delay)
                continue
            except RelayClientError as e:
                logger.error(
                    f"Error sending bundle {bundle.index + 1}: {e.payload or str(e)}",
                    extra={"bundle_index": bundle.index, "status_code": e.status_code}
                )
                raise SubmissionError(
                    str(e), status_code=e.status_code, payload=e.payload, attempts=attempt
                ) from e

            return SubmissionResult(
                bundle_index=bundle.index,
                wallet=str(bundle.fee_payer),
                transaction_count=len(bundle),
                status="submitted",
                bundle_id=bundle_id,
                attempts=attempt,
            )

        raise RetryExhaustedError(self.max_attempts, payload=last_error.payload if last_error else None)
