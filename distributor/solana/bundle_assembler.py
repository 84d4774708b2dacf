"""
Groups signed transfer transactions into Jito bundles.
"""

from typing import List, Optional

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from distributor.config import MAX_BUNDLE_SIZE
from distributor.solana.models import Bundle, Recipient
from distributor.solana.token_program import create_tip_instruction
from distributor.solana.wallet_rotator import WalletRotator


class BundleAssembler:
    """
    Materializes transactions and packs them into bundles of at most five.

    The tip instruction is appended to a transaction if and only if it is the
    last one of its bundle: the fifth, or the one for the final recipient.
    Transactions are signed only after the tip decision, with a blockhash
    fetched right before signing.
    """

    def __init__(
        self,
        rotator: WalletRotator,
        client: AsyncClient,
        tip_account: Pubkey,
        tip_lamports: int,
        max_bundle_size: int = MAX_BUNDLE_SIZE
    ):
        """
        Initialize the assembler.

        Args:
            rotator: Signer wallet rotation
            client: Async Solana RPC client, used for recent blockhashes
            tip_account: Relay tip account
            tip_lamports: Tip amount in lamports
            max_bundle_size: Maximum transactions per bundle
        """
        self.rotator = rotator
        self.client = client
        self.tip_account = tip_account
        self.tip_lamports = tip_lamports
        self.max_bundle_size = max_bundle_size

        self.bundles: List[Bundle] = []
        self._current: Optional[Bundle] = None

    @property
    def current_wallet(self) -> Keypair:
        """Wallet paying for the bundle being formed."""
        if self._current is not None:
            return self._current.wallet
        return self.rotator.current()

    async def add(
        self,
        instructions: List[Instruction],
        recipient: Recipient,
        is_last: bool = False
    ) -> Optional[Bundle]:
        """
        Sign a transaction for one recipient and append it to the open bundle.

        Args:
            instructions: Transfer instructions built for the current wallet
            recipient: Recipient served by the transaction
            is_last: True for the final recipient of the input

        Returns:
            The bundle if this transaction closed it, otherwise None
        """
        if self._current is None:
            self._current = Bundle(index=len(self.bundles), wallet=self.rotator.current())

        bundle = self._current
        wallet = bundle.wallet
        closes_bundle = len(bundle) == self.max_bundle_size - 1 or is_last

        tx_instructions = list(instructions)
        if closes_bundle:
            tx_instructions.append(
                create_tip_instruction(wallet.pubkey(), self.tip_account, self.tip_lamports)
            )

        blockhash_resp = await self.client.get_latest_blockhash(commitment=Confirmed)
        tx = Transaction.new_signed_with_payer(
            tx_instructions,
            wallet.pubkey(),
            [wallet],
            blockhash_resp.value.blockhash,
        )

        bundle.transactions.append(tx)
        bundle.recipients.append(recipient)
        logger.info(
            f"Transaction created: Sending {recipient.amount} tokens from {wallet.pubkey()} to {recipient.address}",
            extra={"bundle_index": bundle.index, "position": len(bundle), "tip": closes_bundle}
        )

        if closes_bundle:
            return self._close()
        return None

    def _close(self) -> Bundle:
        bundle = self._current
        self.bundles.append(bundle)
        self._current = None
        self.rotator.advance()
        logger.info(f"Bundle created with {len(bundle)} transactions")
        return bundle
