import os
from typing import Optional, Union

from dotenv import load_dotenv

from distributor.exceptions import ConfigurationError
from distributor.solana.models import DistributionConfig
from distributor.utils.validation_utils import (
    validate_solana_address,
    validate_tip_amount,
    log_validation_result,
)

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Network configuration
SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
JITO_BUNDLE_API = os.getenv("JITO_BUNDLE_API", "https://mainnet.block-engine.jito.wtf/api/v1/bundles")
RELAY_TIMEOUT = int(os.getenv("RELAY_TIMEOUT", "10"))  # seconds

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Distribution defaults
DEFAULT_KEY_FOLDER = os.getenv("KEY_FOLDER", "./keypairs")
DEFAULT_RECIPIENT_FILE = os.getenv("RECIPIENT_FILE", "./distri.txt")
DEFAULT_TOKEN_MINT = os.getenv("TOKEN_MINT", "5LafQUrVco6o7KMz42eqVEJ9LW31StPyGjeeu5sKoMtA")
DEFAULT_TIP_ACCOUNT = os.getenv("TIP_ACCOUNT", "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5")
DEFAULT_TIP_AMOUNT = os.getenv("TIP_AMOUNT", "100000")  # lamports
BUNDLE_PACING_SECONDS = float(os.getenv("BUNDLE_PACING_SECONDS", "30"))
INCLUDE_MEMO = _env_flag("INCLUDE_MEMO", "false")
RETRY_ON_RATE_LIMIT = _env_flag("RETRY_ON_RATE_LIMIT", "true")

# Bundle composition
MAX_BUNDLE_SIZE = 5

# Rate limit backoff
RATE_LIMIT_MIN_DELAY = 30  # seconds
RATE_LIMIT_MAX_DELAY = 300  # 5 minutes
MAX_SUBMIT_ATTEMPTS = 5


def build_distribution_config(
    token_mint: str = DEFAULT_TOKEN_MINT,
    tip_account: str = DEFAULT_TIP_ACCOUNT,
    tip_amount: Union[int, str] = DEFAULT_TIP_AMOUNT,
    include_memo: bool = INCLUDE_MEMO,
    retry_on_rate_limit: bool = RETRY_ON_RATE_LIMIT,
    pacing_seconds: Optional[float] = None,
) -> DistributionConfig:
    """
    Validate raw settings into a DistributionConfig.

    Args:
        token_mint: Token mint address
        tip_account: Relay tip account address
        tip_amount: Tip amount in lamports
        include_memo: Prefix every transfer with a memo instruction
        retry_on_rate_limit: Retry rate limited bundle submissions with backoff
        pacing_seconds: Delay between bundle submissions

    Returns:
        Validated DistributionConfig

    Raises:
        ConfigurationError: If an address or amount is malformed
    """
    mint_ok, mint = validate_solana_address(token_mint)
    tip_ok, tip_pubkey = validate_solana_address(tip_account)
    amount_ok, tip_lamports = validate_tip_amount(tip_amount)

    errors = []
    for field_name, is_valid, result in (
        ("token_mint", mint_ok, mint),
        ("tip_account", tip_ok, tip_pubkey),
        ("tip_amount", amount_ok, tip_lamports),
    ):
        log_validation_result(field_name, is_valid, result)
        if not is_valid:
            errors.append(f"{field_name}: {result}")

    if pacing_seconds is None:
        pacing_seconds = BUNDLE_PACING_SECONDS
    if pacing_seconds < 0:
        errors.append(f"pacing_seconds: must not be negative, got {pacing_seconds}")

    if errors:
        raise ConfigurationError("Invalid configuration: " + "; ".join(errors))

    return DistributionConfig(
        token_mint=str(mint),
        tip_account=str(tip_pubkey),
        tip_lamports=tip_lamports,
        include_memo=include_memo,
        retry_on_rate_limit=retry_on_rate_limit,
        pacing_seconds=pacing_seconds,
    )
