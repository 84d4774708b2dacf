#!/usr/bin/env python
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from distributor import __version__
from distributor.api.relay_client import RelayClient
from distributor.config import (
    BUNDLE_PACING_SECONDS,
    DEFAULT_KEY_FOLDER,
    DEFAULT_RECIPIENT_FILE,
    DEFAULT_TIP_ACCOUNT,
    DEFAULT_TIP_AMOUNT,
    DEFAULT_TOKEN_MINT,
    INCLUDE_MEMO,
    JITO_BUNDLE_API,
    LOG_LEVEL,
    RETRY_ON_RATE_LIMIT,
    SOLANA_RPC_URL,
    build_distribution_config,
)
from distributor.exceptions import DistributionError
from distributor.solana.models import DistributionReport
from distributor.solana.orchestrator import DistributionContext, DistributionOrchestrator
from distributor.solana.wallet_rotator import WalletRotator
from distributor.utils.recipient_loader import load_recipients
from distributor.utils.wallet_loader import load_wallets_from_folder


def setup_logging():
    """Configure structured logging with loguru."""
    logger.remove()  # Remove default handler
    logger.add(
        "logs/distribution_{time}.log",
        rotation="1 day",
        retention="14 days",
        level=LOG_LEVEL,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message} | {extra}",
        serialize=True,  # JSON formatting for structured logs
    )

    # Also send logs to stdout
    logger.add(
        lambda msg: print(msg, end=""),
        level=LOG_LEVEL,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
    )

    # Redirect httpx/urllib3 loggers to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru."""
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jito-distributor",
        description="Distribute tokens using Jito bundles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Default values:\n"
            f"  Key folder: {DEFAULT_KEY_FOLDER}\n"
            f"  Recipient file: {DEFAULT_RECIPIENT_FILE}\n"
            f"  Token mint: {DEFAULT_TOKEN_MINT}\n"
            f"  Tip account: {DEFAULT_TIP_ACCOUNT}\n"
            f"  Tip amount: {DEFAULT_TIP_AMOUNT} lamports"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-k", "--key-folder", default=DEFAULT_KEY_FOLDER,
        help="Path to the folder containing wallet key files"
    )
    parser.add_argument(
        "-r", "--recipient-file", default=DEFAULT_RECIPIENT_FILE,
        help="Path to the file containing recipient addresses and amounts"
    )
    parser.add_argument("-m", "--token-mint", default=DEFAULT_TOKEN_MINT, help="Token mint address")
    parser.add_argument("-t", "--tip-account", default=DEFAULT_TIP_ACCOUNT, help="Tip account address")
    parser.add_argument("-a", "--tip-amount", default=DEFAULT_TIP_AMOUNT, help="Tip amount in lamports")
    parser.add_argument(
        "--memo", action="store_true", default=INCLUDE_MEMO,
        help="Prefix every transfer with a memo instruction"
    )
    parser.add_argument(
        "--no-retry", action="store_false", dest="retry", default=RETRY_ON_RATE_LIMIT,
        help="Do not retry rate limited bundle submissions"
    )
    parser.add_argument(
        "--pacing", type=float, default=BUNDLE_PACING_SECONDS,
        help="Seconds to wait between bundle submissions"
    )
    parser.add_argument("--rpc-url", default=SOLANA_RPC_URL, help="Solana RPC endpoint")
    parser.add_argument("--relay-url", default=JITO_BUNDLE_API, help="Jito block engine bundles endpoint")
    return parser


async def distribute(args: argparse.Namespace) -> DistributionReport:
    """
    Load inputs, wire the run context and run the distribution.

    Raises:
        DistributionError: On configuration or account resolution failures
    """
    config = build_distribution_config(
        token_mint=args.token_mint,
        tip_account=args.tip_account,
        tip_amount=args.tip_amount,
        include_memo=args.memo,
        retry_on_rate_limit=args.retry,
        pacing_seconds=args.pacing,
    )
    wallets = load_wallets_from_folder(args.key_folder)
    recipients = load_recipients(args.recipient_file)

    client = AsyncClient(args.rpc_url, commitment=Confirmed)
    relay_client = RelayClient(bundle_url=args.relay_url)
    try:
        context = DistributionContext(
            client=client,
            relay_client=relay_client,
            rotator=WalletRotator(wallets),
            config=config,
        )
        return await DistributionOrchestrator(context).run(recipients)
    finally:
        relay_client.close()
        await client.close()


async def main(argv: Optional[List[str]] = None) -> int:
    """Run the distributor CLI and return the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        await distribute(args)
    except DistributionError as e:
        logger.error(f"Error: {str(e)}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {str(e)}")
        return 1

    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
