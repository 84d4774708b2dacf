"""
Shared fixtures for the distributor tests.

The RPC client and the relay are replaced by mocks; transactions are real
solders transactions signed by throwaway keypairs.
"""

from types import SimpleNamespace
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from distributor.solana.models import DistributionConfig, Recipient

TIP_LAMPORTS = 100000


class RecordingSleep:
    """Async sleep stand-in that records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def program_ids(tx):
    """Program id of every instruction of a signed transaction, in order."""
    keys = tx.message.account_keys
    return [keys[ix.program_id_index] for ix in tx.message.instructions]


def tip_count(tx) -> int:
    return program_ids(tx).count(SYSTEM_PROGRAM_ID)


def fee_payer(tx):
    return tx.message.account_keys[0]


def make_rpc_client(existing: bool = True) -> AsyncMock:
    """RPC client mock; every token account exists unless told otherwise."""
    client = AsyncMock()
    client.get_latest_blockhash.return_value = SimpleNamespace(
        value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=100)
    )
    client.get_account_info.return_value = SimpleNamespace(value=object() if existing else None)
    client.send_raw_transaction.return_value = SimpleNamespace(value="5ignature")
    client.confirm_transaction.return_value = SimpleNamespace(value=[SimpleNamespace(err=None)])
    return client


@pytest.fixture
def rpc_client():
    return make_rpc_client()


@pytest.fixture
def relay_client():
    relay = MagicMock()
    relay.send_bundle.return_value = "bundle-id"
    return relay


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def wallets():
    return [Keypair() for _ in range(2)]


@pytest.fixture
def tip_account():
    return Keypair().pubkey()


@pytest.fixture
def mint():
    return Keypair().pubkey()


@pytest.fixture
def distribution_config(mint, tip_account):
    return DistributionConfig(
        token_mint=str(mint),
        tip_account=str(tip_account),
        tip_lamports=TIP_LAMPORTS,
        include_memo=False,
        retry_on_rate_limit=True,
        pacing_seconds=30,
    )


def make_recipients(count: int, amount: int = 1000) -> List[Recipient]:
    return [Recipient(address=str(Keypair().pubkey()), amount=amount) for _ in range(count)]
