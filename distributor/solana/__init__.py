"""
Solana side of the distributor.

This package contains modules for resolving token accounts, building transfer
instructions, rotating signer wallets, assembling Jito bundles and submitting
them with rate limit backoff.
"""
