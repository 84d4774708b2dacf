"""
Models for token distribution.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import base58
from pydantic import BaseModel, Field
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction


class Recipient(BaseModel):
    """A recipient of the distribution."""
    address: str
    amount: int = Field(ge=0)  # token base units

    @property
    def pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.address)


class DistributionConfig(BaseModel):
    """Validated settings for a distribution run."""
    token_mint: str
    tip_account: str
    tip_lamports: int = Field(gt=0)
    include_memo: bool = False
    retry_on_rate_limit: bool = True
    pacing_seconds: float = Field(default=30.0, ge=0)

    @property
    def mint_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.token_mint)

    @property
    def tip_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.tip_account)


class SubmissionResult(BaseModel):
    """Outcome of submitting one bundle to the relay."""
    bundle_index: int
    wallet: str
    transaction_count: int
    status: str = "pending"  # pending, submitted, failed
    bundle_id: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    submitted_at: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.status == "submitted"


class DistributionReport(BaseModel):
    """Summary of a distribution run."""
    recipient_count: int
    bundle_count: int = 0
    results: List[SubmissionResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def submitted_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def summary(self) -> str:
        """Human-readable one-line summary of the run."""
        return (
            f"Token distribution completed: {self.submitted_count}/{self.bundle_count} bundles submitted, "
            f"{self.failed_count} failed, {self.recipient_count} recipients"
        )


@dataclass
class Bundle:
    """
    An ordered group of up to five signed transactions, all paid by one wallet.

    The last transaction carries the tip instruction.
    """
    index: int
    wallet: Keypair
    transactions: List[Transaction] = field(default_factory=list)
    recipients: List[Recipient] = field(default_factory=list)

    @property
    def fee_payer(self) -> Pubkey:
        return self.wallet.pubkey()

    def __len__(self) -> int:
        return len(self.transactions)

    def encode(self) -> List[str]:
        """Serialize every transaction to base58 for the relay."""
        return [base58.b58encode(bytes(tx)).decode("utf-8") for tx in self.transactions]
