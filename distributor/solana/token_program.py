"""
SPL Token program utilities for Solana.

This module builds the instructions of a single distribution transfer and
resolves (creating when needed) the associated token accounts involved.
"""

from typing import Dict, List, Optional, Tuple

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams as SystemTransferParams
from solders.system_program import transfer as system_transfer
from solders.transaction import Transaction
from spl.memo.constants import MEMO_PROGRAM_ID
from spl.memo.instructions import create_memo
from spl.memo.models import MemoParams
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    create_associated_token_account,
    get_associated_token_address,
    transfer,
)
from spl.token.models import TransferParams

from distributor.exceptions import AccountResolutionError


def create_memo_instruction(signer: Pubkey, message: str) -> Instruction:
    """
    Create a memo instruction carrying a human-readable tag.

    Args:
        signer: Wallet signing the transaction
        message: Memo text, encoded as UTF-8

    Returns:
        Memo program instruction
    """
    return create_memo(
        MemoParams(
            program_id=MEMO_PROGRAM_ID,
            signer=signer,
            message=message.encode("utf-8"),
        )
    )


def create_token_transfer_instruction(
    sender_token_account: Pubkey,
    recipient_token_account: Pubkey,
    owner: Pubkey,
    amount: int
) -> Instruction:
    """
    Create an SPL token transfer instruction.

    Args:
        sender_token_account: Sender's token account
        recipient_token_account: Recipient's token account
        owner: Owner of the sending token account
        amount: Amount to transfer in token base units

    Returns:
        Instruction for the token transfer
    """
    return transfer(
        TransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=sender_token_account,
            dest=recipient_token_account,
            owner=owner,
            amount=amount,
        )
    )


def build_transfer_instructions(
    sender_token_account: Pubkey,
    recipient_token_account: Pubkey,
    signer_owner: Pubkey,
    amount: int,
    include_memo: bool = False,
    memo: Optional[str] = None
) -> List[Instruction]:
    """
    Build the ordered instruction set for one transfer.

    Amounts are not checked against the sender balance; insufficient funds
    surface when the relay executes the bundle.

    Args:
        sender_token_account: Sender's token account
        recipient_token_account: Recipient's token account
        signer_owner: Owner of the sending token account, signs the transfer
        amount: Amount in token base units
        include_memo: Prefix the transfer with a memo instruction
        memo: Memo text, required when include_memo is set

    Returns:
        List of instructions, memo first when requested
    """
    instructions = []
    if include_memo:
        instructions.append(create_memo_instruction(signer_owner, memo or "Token transfer"))

    instructions.append(
        create_token_transfer_instruction(
            sender_token_account=sender_token_account,
            recipient_token_account=recipient_token_account,
            owner=signer_owner,
            amount=amount,
        )
    )
    return instructions


def create_tip_instruction(payer: Pubkey, tip_account: Pubkey, lamports: int) -> Instruction:
    """Create the System Program transfer that tips the relay."""
    return system_transfer(
        SystemTransferParams(
            from_pubkey=payer,
            to_pubkey=tip_account,
            lamports=lamports,
        )
    )


class AccountResolver:
    """
    Resolves associated token accounts, creating the missing ones.

    Resolved addresses are cached per (mint, owner) so that recipients sharing
    a sender never trigger a second lookup or creation.
    """

    def __init__(self, client: AsyncClient):
        """
        Initialize the resolver.

        Args:
            client: Async Solana RPC client
        """
        self.client = client
        self._token_account_cache: Dict[Tuple[Pubkey, Pubkey], Pubkey] = {}

    async def resolve(self, mint: Pubkey, owner: Pubkey, payer: Keypair) -> Pubkey:
        """
        Return the owner's associated token account for the mint.

        Args:
            mint: Token mint address
            owner: Wallet owning the token account
            payer: Keypair paying for the account creation if it is missing

        Returns:
            Token account address, existing on-chain

        Raises:
            AccountResolutionError: If the lookup or the creation fails
        """
        cache_key = (mint, owner)
        if cache_key in self._token_account_cache:
            return self._token_account_cache[cache_key]

        token_account = get_associated_token_address(owner, mint)

        try:
            response = await self.client.get_account_info(token_account, commitment=Confirmed)
        except Exception as e:
            raise AccountResolutionError(
                f"Error looking up token account for {owner}: {str(e)}",
                owner=str(owner),
                mint=str(mint),
            ) from e

        if response.value is not None:
            logger.info(f"Existing token account found for {owner}")
        else:
            logger.info(f"Creating new token account for {owner}")
            await self._create_token_account(mint, owner, payer, token_account)
            logger.info(f"New token account created for {owner}")

        self._token_account_cache[cache_key] = token_account
        return token_account

    async def _create_token_account(
        self,
        mint: Pubkey,
        owner: Pubkey,
        payer: Keypair,
        token_account: Pubkey
    ) -> None:
        """Send a create-associated-token-account transaction and wait for it."""
        try:
            blockhash_resp = await self.client.get_latest_blockhash(commitment=Confirmed)
            tx = Transaction.new_signed_with_payer(
                [create_associated_token_account(payer.pubkey(), owner, mint)],
                payer.pubkey(),
                [payer],
                blockhash_resp.value.blockhash,
            )

            send_resp = await self.client.send_raw_transaction(bytes(tx))
            signature = send_resp.value

            confirm_resp = await self.client.confirm_transaction(signature, commitment=Confirmed)
        except Exception as e:
            raise AccountResolutionError(
                f"Error creating token account {token_account} for {owner}: {str(e)}",
                owner=str(owner),
                mint=str(mint),
            ) from e

        status = confirm_resp.value[0] if confirm_resp.value else None
        if status is not None and status.err is not None:
            raise AccountResolutionError(
                f"Token account creation {signature} failed: {status.err}",
                owner=str(owner),
                mint=str(mint),
            )

        logger.debug(
            f"Token account creation confirmed: {signature}",
            extra={"owner": str(owner), "token_account": str(token_account)}
        )
