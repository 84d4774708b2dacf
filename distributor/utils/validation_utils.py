from typing import Tuple, Union
from loguru import logger
from solders.pubkey import Pubkey

# SPL token amounts are encoded as little-endian u64
MAX_TOKEN_AMOUNT = 2 ** 64 - 1


def validate_solana_address(text: str) -> Tuple[bool, Union[Pubkey, str]]:
    """
    Validate a base58 encoded Solana address.

    Args:
        text: The address text

    Returns:
        A tuple of (is_valid, pubkey_or_error_message)
    """
    address = (text or "").strip()
    if not address:
        return False, "Address is empty."

    try:
        return True, Pubkey.from_string(address)
    except ValueError:
        return False, f"Invalid Solana address: {address}"


def validate_token_amount(text: str) -> Tuple[bool, Union[int, str]]:
    """
    Validate a token amount given in base units.

    Zero is accepted and forwarded as a zero-value transfer. Decimal and
    exponent notation are rejected so that no precision is lost.

    Args:
        text: The amount text

    Returns:
        A tuple of (is_valid, amount_or_error_message)
    """
    cleaned = str(text).strip()
    if not (cleaned.isascii() and cleaned.isdigit()):
        return False, f"Amount must be a non-negative integer in base units, got '{cleaned}'."

    amount = int(cleaned)
    if amount > MAX_TOKEN_AMOUNT:
        return False, f"Amount {amount} exceeds the maximum token amount {MAX_TOKEN_AMOUNT}."

    return True, amount


def validate_tip_amount(value: Union[int, str]) -> Tuple[bool, Union[int, str]]:
    """
    Validate the tip amount in lamports. Must be a positive integer.
    """
    is_valid, result = validate_token_amount(str(value))
    if not is_valid:
        return False, f"Tip amount must be a positive integer of lamports, got '{value}'."
    if result == 0:
        return False, "Tip amount must be greater than zero."
    return True, result


def log_validation_result(field_name: str, is_valid: bool, result: Union[Pubkey, int, str]) -> None:
    """Log the outcome of a validation step."""
    if is_valid:
        logger.debug(f"Validated {field_name}: {result}")
    else:
        logger.warning(f"Validation failed for {field_name}: {result}")
