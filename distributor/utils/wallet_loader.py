import json
import os
from typing import List

from loguru import logger
from solders.keypair import Keypair

from distributor.exceptions import ConfigurationError


def load_wallets_from_folder(key_folder: str) -> List[Keypair]:
    """
    Load signer wallets from a folder of keypair files.

    Every ``*.json`` file holds a JSON array of the 64 secret key bytes, the
    format written by ``solana-keygen``. Files are read in name order.

    Args:
        key_folder: Folder containing the keypair files

    Returns:
        List of keypairs

    Raises:
        ConfigurationError: If the folder is missing, a file is malformed or no wallet is found
    """
    if not os.path.isdir(key_folder):
        raise ConfigurationError(f"Key folder not found: {key_folder}")

    wallets = []
    wallet_files = sorted(f for f in os.listdir(key_folder) if f.endswith('.json'))

    for filename in wallet_files:
        file_path = os.path.join(key_folder, filename)
        try:
            with open(file_path, 'r') as f:
                secret_key = json.load(f)
            keypair = Keypair.from_bytes(bytes(secret_key))
        except (OSError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid keypair file {filename}: {str(e)}") from e

        wallets.append(keypair)
        logger.info(f"Loaded wallet from {filename}: {str(keypair.pubkey())[:8]}...")

    if not wallets:
        raise ConfigurationError(f"No wallet files found in {key_folder}")

    return wallets
