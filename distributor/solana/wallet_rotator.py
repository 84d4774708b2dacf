"""
Round-robin rotation of signer wallets.
"""

from typing import List, Sequence

from loguru import logger
from solders.keypair import Keypair

from distributor.exceptions import ConfigurationError


class WalletRotator:
    """
    Hands out the current signer wallet and advances once per closed bundle.

    Every transaction of a bundle is paid and signed by the same wallet, so the
    index only moves when a bundle is complete.
    """

    def __init__(self, wallets: Sequence[Keypair]):
        """
        Initialize the rotator.

        Args:
            wallets: Loaded signer wallets, in rotation order

        Raises:
            ConfigurationError: If no wallets are given
        """
        if not wallets:
            raise ConfigurationError("No wallets loaded, at least one signer wallet is required")

        self._wallets: List[Keypair] = list(wallets)
        self._index = 0
        logger.info(f"WalletRotator initialized with {len(self._wallets)} wallets")

    def __len__(self) -> int:
        return len(self._wallets)

    @property
    def index(self) -> int:
        return self._index

    def current(self) -> Keypair:
        """Return the wallet at the current index."""
        return self._wallets[self._index]

    def advance(self) -> Keypair:
        """
        Move to the next wallet, wrapping around after the last one.

        Returns:
            The new current wallet
        """
        self._index = (self._index + 1) % len(self._wallets)
        wallet = self._wallets[self._index]
        logger.debug(
            f"Rotated to wallet {self._index}: {wallet.pubkey()}",
            extra={"wallet_index": self._index}
        )
        return wallet
