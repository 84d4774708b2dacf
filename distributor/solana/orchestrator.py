"""
Orchestrates a complete token distribution run.

Recipients are turned into signed transfer transactions, packed into bundles
and the bundles are then submitted to the relay one after another.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence

from loguru import logger
from solana.rpc.async_api import AsyncClient

from distributor.api.relay_client import RelayClient
from distributor.exceptions import RetryExhaustedError, SubmissionError
from distributor.solana.bundle_assembler import BundleAssembler
from distributor.solana.bundle_submitter import BundleSubmitter
from distributor.solana.models import Bundle, DistributionConfig, DistributionReport, Recipient, SubmissionResult
from distributor.solana.token_program import AccountResolver, build_transfer_instructions
from distributor.solana.wallet_rotator import WalletRotator


@dataclass
class DistributionContext:
    """Collaborators and settings shared by one distribution run."""
    client: AsyncClient
    relay_client: RelayClient
    rotator: WalletRotator
    config: DistributionConfig


class DistributionOrchestrator:
    """
    Drives the distribution in strict recipient order.

    Account resolution failures abort the run before anything is submitted.
    Submission failures only abandon the bundle concerned.
    """

    def __init__(
        self,
        context: DistributionContext,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_bundle_submitted: Optional[Callable[[SubmissionResult], None]] = None,
        on_bundle_failed: Optional[Callable[[SubmissionResult], None]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            context: Run context with RPC client, relay client, rotator and config
            sleep: Coroutine used for pacing and backoff waits
            on_bundle_submitted: Callback when a bundle is accepted by the relay
            on_bundle_failed: Callback when a bundle is abandoned
        """
        self.context = context
        self.config = context.config
        self.sleep = sleep
        self.on_bundle_submitted = on_bundle_submitted
        self.on_bundle_failed = on_bundle_failed

        self.resolver = AccountResolver(context.client)
        self.assembler = BundleAssembler(
            rotator=context.rotator,
            client=context.client,
            tip_account=self.config.tip_pubkey,
            tip_lamports=self.config.tip_lamports,
        )
        self.submitter = BundleSubmitter(
            relay_client=context.relay_client,
            retry_on_rate_limit=self.config.retry_on_rate_limit,
            sleep=sleep,
        )

    async def run(self, recipients: Sequence[Recipient]) -> DistributionReport:
        """
        Build and submit every bundle for the recipients.

        Args:
            recipients: Recipients in distribution order

        Returns:
            DistributionReport with one SubmissionResult per bundle

        Raises:
            AccountResolutionError: If a token account cannot be resolved
        """
        logger.info(
            f"Loaded {len(self.context.rotator)} wallets and {len(recipients)} recipients.",
            extra={"token_mint": self.config.token_mint, "include_memo": self.config.include_memo}
        )
        report = DistributionReport(recipient_count=len(recipients))

        bundles = await self.build_bundles(recipients)
        report.bundle_count = len(bundles)
        report.results = await self.submit_bundles(bundles)
        report.completed_at = datetime.now()

        logger.info(
            report.summary(),
            extra={"submitted": report.submitted_count, "failed": report.failed_count}
        )
        return report

    async def build_bundles(self, recipients: Sequence[Recipient]) -> List[Bundle]:
        """
        Resolve accounts and assemble signed bundles for every recipient.
        """
        mint = self.config.mint_pubkey
        bundles = []

        for i, recipient in enumerate(recipients):
            wallet = self.assembler.current_wallet

            sender_token_account = await self.resolver.resolve(mint, wallet.pubkey(), wallet)
            recipient_token_account = await self.resolver.resolve(mint, recipient.pubkey, wallet)

            instructions = build_transfer_instructions(
                sender_token_account=sender_token_account,
                recipient_token_account=recipient_token_account,
                signer_owner=wallet.pubkey(),
                amount=recipient.amount,
                include_memo=self.config.include_memo,
                memo=f"Token transfer {i + 1}",
            )

            bundle = await self.assembler.add(instructions, recipient, is_last=(i == len(recipients) - 1))
            if bundle is not None:
                bundles.append(bundle)

        return bundles

    async def submit_bundles(self, bundles: Sequence[Bundle]) -> List[SubmissionResult]:
        """
        Submit bundles in order, pacing between them.

        A failed bundle is reported and skipped; the next one is still sent.
        """
        results = []

        for i, bundle in enumerate(bundles):
            logger.info(f"Sending bundle {i + 1} of {len(bundles)}...")
            try:
                result = await self.submitter.submit(bundle)
            except (SubmissionError, RetryExhaustedError) as e:
                result = SubmissionResult(
                    bundle_index=bundle.index,
                    wallet=str(bundle.fee_payer),
                    transaction_count=len(bundle),
                    status="failed",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    attempts=e.attempts,
                )
                logger.error(
                    f"Failed to send bundle {i + 1}: {str(e)}",
                    extra={"bundle_index": bundle.index, "error_type": result.error_type}
                )
                if self.on_bundle_failed:
                    self.on_bundle_failed(result)
            else:
                logger.info(
                    f"Bundle {i + 1} sent successfully. Bundle ID: {result.bundle_id}",
                    extra={"bundle_index": bundle.index, "attempts": result.attempts}
                )
                if self.on_bundle_submitted:
                    self.on_bundle_submitted(result)

            results.append(result)

            if i < len(bundles) - 1 and self.config.pacing_seconds > 0:
                logger.info(f"Waiting {self.config.pacing_seconds} seconds before sending the next bundle...")
                await self.sleep(self.config.pacing_seconds)

        return results
