from typing import List

from loguru import logger

from distributor.exceptions import ConfigurationError
from distributor.solana.models import Recipient
from distributor.utils.validation_utils import validate_solana_address, validate_token_amount


def parse_recipient_lines(lines: List[str]) -> List[Recipient]:
    """
    Parse ``address,amount`` lines into recipients, keeping their order.

    Lines missing the address or the amount (blank lines included) are skipped.

    Raises:
        ConfigurationError: If an address or amount is malformed
    """
    recipients = []

    for line_num, line in enumerate(lines, start=1):
        parts = line.strip().split(',')
        address = parts[0].strip()
        amount_text = parts[1].strip() if len(parts) > 1 else ""
        if not address or not amount_text:
            continue

        is_valid, pubkey = validate_solana_address(address)
        if not is_valid:
            raise ConfigurationError(f"Line {line_num}: {pubkey}")

        is_valid, amount = validate_token_amount(amount_text)
        if not is_valid:
            raise ConfigurationError(f"Line {line_num}: {amount}")

        recipients.append(Recipient(address=str(pubkey), amount=amount))

    return recipients


def load_recipients(recipient_file: str) -> List[Recipient]:
    """
    Load recipients from a text file of ``address,amount`` lines.

    Args:
        recipient_file: Path to the recipient list

    Returns:
        Recipients in file order
    """
    try:
        with open(recipient_file, 'r', encoding='utf-8') as f:
            lines = f.read().split('\n')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read recipient file {recipient_file}: {str(e)}") from e

    recipients = parse_recipient_lines(lines)
    logger.info(f"Loaded {len(recipients)} recipients from {recipient_file}")
    return recipients
