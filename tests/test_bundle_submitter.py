import pytest
from solders.keypair import Keypair

from distributor.api.relay_client import (
    RelayBadResponseError,
    RelayClientError,
    RelayRateLimitError,
    RelayTimeoutError,
)
from distributor.exceptions import RetryExhaustedError, SubmissionError
from distributor.solana.bundle_submitter import BundleSubmitter, next_delay
from distributor.solana.models import Bundle


def _rate_limited():
    return RelayRateLimitError("Relay returned 429", status_code=429, payload={"error": "rate limited"})


@pytest.fixture
def bundle():
    # encode() of an empty bundle is an empty list, enough for the relay mock
    return Bundle(index=0, wallet=Keypair())


class TestNextDelay:
    """Pure backoff schedule."""

    def test_doubles_from_thirty_seconds(self):
        assert [next_delay(a) for a in range(1, 5)] == [30, 60, 120, 240]

    def test_capped_at_five_minutes(self):
        assert next_delay(5) == 300
        assert next_delay(9) == 300

    def test_rejects_attempt_zero(self):
        with pytest.raises(ValueError):
            next_delay(0)


class TestBundleSubmitter:
    """Relay submission and rate limit retries."""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self, relay_client, recording_sleep, bundle):
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        result = await submitter.submit(bundle)

        assert result.success
        assert result.bundle_id == "bundle-id"
        assert result.attempts == 1
        assert result.wallet == str(bundle.wallet.pubkey())
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_retries_after_rate_limit(self, relay_client, recording_sleep, bundle):
        relay_client.send_bundle.side_effect = [_rate_limited(), _rate_limited(), "abc123"]
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        result = await submitter.submit(bundle)

        assert result.bundle_id == "abc123"
        assert result.attempts == 3
        assert recording_sleep.calls == [30, 60]

    @pytest.mark.asyncio
    async def test_exhausted_after_five_rate_limits(self, relay_client, recording_sleep, bundle):
        relay_client.send_bundle.side_effect = [_rate_limited() for _ in range(6)]
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await submitter.submit(bundle)

        assert exc_info.value.attempts == 5
        assert relay_client.send_bundle.call_count == 5
        assert recording_sleep.calls == [30, 60, 120, 240]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        RelayBadResponseError("Relay returned 500: oops", status_code=500, payload="oops"),
        RelayBadResponseError("Relay error: bundle contains an already processed transaction", status_code=200),
        RelayTimeoutError("Relay request timed out after 10s"),
        RelayClientError("Relay request failed: connection refused"),
    ])
    async def test_other_errors_are_not_retried(self, relay_client, recording_sleep, bundle, error):
        relay_client.send_bundle.side_effect = error
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit(bundle)

        assert relay_client.send_bundle.call_count == 1
        assert recording_sleep.calls == []
        assert exc_info.value.status_code == error.status_code

    @pytest.mark.asyncio
    async def test_http_500_carries_payload(self, relay_client, recording_sleep, bundle):
        relay_client.send_bundle.side_effect = RelayBadResponseError(
            "Relay returned 500", status_code=500, payload={"message": "internal"}
        )
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit(bundle)

        assert exc_info.value.payload == {"message": "internal"}

    @pytest.mark.asyncio
    async def test_error_after_rate_limit_counts_every_attempt(self, relay_client, recording_sleep, bundle):
        relay_client.send_bundle.side_effect = [
            _rate_limited(),
            RelayBadResponseError("Relay returned 500", status_code=500, payload="oops"),
        ]
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.submit(bundle)

        assert exc_info.value.attempts == 2
        assert exc_info.value.status_code == 500
        assert recording_sleep.calls == [30]

    @pytest.mark.asyncio
    async def test_no_retry_when_disabled(self, relay_client, recording_sleep, bundle):
        relay_client.send_bundle.side_effect = _rate_limited()
        submitter = BundleSubmitter(relay_client, retry_on_rate_limit=False, sleep=recording_sleep)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await submitter.submit(bundle)

        assert exc_info.value.attempts == 1
        assert relay_client.send_bundle.call_count == 1
        assert recording_sleep.calls == []

    @pytest.mark.asyncio
    async def test_sends_encoded_transactions(self, relay_client, recording_sleep, bundle):
        submitter = BundleSubmitter(relay_client, sleep=recording_sleep)

        await submitter.submit(bundle)

        relay_client.send_bundle.assert_called_once_with(bundle.encode())
