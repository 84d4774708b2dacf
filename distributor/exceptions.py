"""
Error taxonomy for token distribution runs.

Configuration and account resolution failures abort the whole run.
Submission failures are scoped to a single bundle.
"""

from typing import Any, Optional


class DistributionError(Exception):
    """Base exception for distribution errors."""
    pass


class ConfigurationError(DistributionError):
    """Raised when wallets, addresses or amounts are missing or malformed."""
    pass


class AccountResolutionError(DistributionError):
    """Raised when a token account lookup or creation fails."""

    def __init__(self, message: str, owner: Optional[str] = None, mint: Optional[str] = None):
        super().__init__(message)
        self.owner = owner
        self.mint = mint


class SubmissionError(DistributionError):
    """Raised when the relay rejects a bundle or cannot be reached."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, payload: Any = None, attempts: int = 1
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
        self.attempts = attempts


class RetryExhaustedError(DistributionError):
    """Raised when a bundle is still rate limited after the last attempt."""

    def __init__(self, attempts: int, payload: Any = None):
        super().__init__(f"Rate limited on all {attempts} attempt(s), bundle abandoned")
        self.attempts = attempts
        self.payload = payload
