"""Per-contract verification state machine."""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from .client import VerificationClient
from .config import VerifierConfig
from .exceptions import ArtifactBuildError, SourceNotFoundError
from .types import (
    DeploymentRecord,
    PollStatus,
    VerificationOutcome,
    VerificationRequest,
    VerificationState,
)

logger = logging.getLogger(__name__)

ALREADY_VERIFIED_DETAIL = "Contract is already verified"
DRY_RUN_DETAIL = "Dry run - request generated, not submitted"
CANCELLED_DETAIL = "Cancelled before completion"


class Resolver(Protocol):
    def resolve(self, contract_name: str) -> str: ...


class Builder(Protocol):
    def build(
        self,
        address: str,
        source_identifier: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]: ...


class Step(Enum):
    """Non-terminal states. Transitions only move forward."""

    INIT = "init"
    CHECKING_EXISTING = "checking_existing"
    RESOLVING_SOURCE = "resolving_source"
    BUILDING_ARTIFACT = "building_artifact"
    SUBMITTING = "submitting"
    POLLING = "polling"


@dataclass
class VerificationContext:
    """Working data for one contract while the machine runs."""

    chain_id: str
    record: DeploymentRecord
    source_identifier: Optional[str] = None
    request: Optional[VerificationRequest] = None
    verification_id: Optional[str] = None
    transitions: List[Step] = field(default_factory=list)
    outcome: Optional[VerificationOutcome] = None

    def finish(
        self, state: VerificationState, detail: str, dry_run: bool = False
    ) -> VerificationOutcome:
        return VerificationOutcome(
            contract_name=self.record.contract_name,
            address=self.record.address,
            state=state,
            detail=detail,
            verification_id=self.verification_id,
            dry_run=dry_run,
        )


StepResult = Union[Step, VerificationOutcome]


class ContractVerifier:
    """
    Drives one deployed contract to a terminal VerificationOutcome.

    check existing -> resolve source -> build artifact -> submit -> poll.
    Source, build and submission failures are terminal FAILED for this run;
    an exhausted poll budget is PENDING, never FAILED.
    """

    def __init__(
        self,
        config: VerifierConfig,
        client: VerificationClient,
        resolver: Resolver,
        builder: Builder,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.client = client
        self.resolver = resolver
        self.builder = builder
        self.cancel_event = cancel_event or threading.Event()
        self._handlers: Dict[Step, Callable[[VerificationContext], StepResult]] = {
            Step.INIT: self._init,
            Step.CHECKING_EXISTING: self._check_existing,
            Step.RESOLVING_SOURCE: self._resolve_source,
            Step.BUILDING_ARTIFACT: self._build_artifact,
            Step.SUBMITTING: self._submit,
            Step.POLLING: self._poll,
        }

    def verify(self, chain_id: str, record: DeploymentRecord) -> VerificationOutcome:
        """Run the machine for one record and return its outcome."""
        return self.run(chain_id, record).outcome

    def run(self, chain_id: str, record: DeploymentRecord) -> VerificationContext:
        """
        Run the machine for one record, keeping the visited transitions.

        Args:
            chain_id: Chain ID as a decimal string
            record: Deployment to verify

        Returns:
            VerificationContext with transitions and outcome filled in
        """
        context = VerificationContext(chain_id=chain_id, record=record)
        step: StepResult = Step.INIT

        while isinstance(step, Step):
            context.transitions.append(step)
            if self.cancel_event.is_set():
                step = context.finish(VerificationState.PENDING, CANCELLED_DETAIL)
                break
            step = self._handlers[step](context)

        context.outcome = step
        return context

    def _init(self, context: VerificationContext) -> StepResult:
        record = context.record
        logger.info("─" * 56)
        logger.info("Verifying: %s", record.contract_name)
        logger.info("Address: %s", record.address)
        logger.info("TX Hash: %s", record.creation_tx_hash)
        return Step.CHECKING_EXISTING

    def _check_existing(self, context: VerificationContext) -> StepResult:
        logger.info("  → Checking if already verified...")
        check = self.client.check_verified(context.chain_id, context.record.address)
        if check.verified:
            logger.info("  ✓ Already verified - skipping")
            return context.finish(VerificationState.ALREADY_VERIFIED, ALREADY_VERIFIED_DETAIL)
        return Step.RESOLVING_SOURCE

    def _resolve_source(self, context: VerificationContext) -> StepResult:
        name = context.record.contract_name
        try:
            context.source_identifier = self.resolver.resolve(name)
        except SourceNotFoundError as e:
            return self._fail(context, str(e))

        logger.info("Contract ID: %s", context.source_identifier)
        return Step.BUILDING_ARTIFACT

    def _build_artifact(self, context: VerificationContext) -> StepResult:
        logger.info("  → Generating standard JSON input...")
        record = context.record
        source_identifier = context.source_identifier or ""

        try:
            compilation_input = self.builder.build(
                record.address, source_identifier, cancel_event=self.cancel_event
            )
        except ArtifactBuildError as e:
            return self._fail(context, str(e))

        context.request = VerificationRequest(
            address=record.address,
            source_identifier=source_identifier,
            compilation_input=compilation_input,
            compiler_version=self.config.compiler_version,
            creation_tx_hash=record.creation_tx_hash or None,
        )

        if self.config.dry_run:
            logger.info("  ✓ Dry run - request generated successfully")
            return context.finish(VerificationState.SUCCESS, DRY_RUN_DETAIL, dry_run=True)
        return Step.SUBMITTING

    def _submit(self, context: VerificationContext) -> StepResult:
        logger.info("  → Submitting verification request...")
        request = context.request
        if request is None:
            return self._fail(context, "No verification request was built")

        result = self.client.submit(context.chain_id, context.record.address, request)
        if not result.ok:
            return self._fail(context, result.error or "Unknown error")

        context.verification_id = result.verification_id
        logger.info("  ✓ Submitted (ID: %s)", result.verification_id)
        return Step.POLLING

    def _poll(self, context: VerificationContext) -> StepResult:
        logger.info("  → Polling verification status...")
        max_attempts = self.config.max_poll_attempts

        for attempt in range(max_attempts):
            # wait() doubles as the sleep so cancellation interrupts it
            if self.cancel_event.wait(self.config.poll_interval):
                return context.finish(VerificationState.PENDING, CANCELLED_DETAIL)

            if self._is_now_verified(context):
                logger.info("  ✓ Verification successful")
                return context.finish(VerificationState.SUCCESS, "verified")

            logger.debug("Status: pending (attempt %d/%d)", attempt + 1, max_attempts)

        logger.warning("  ⏳ Verification still pending after %d attempts", max_attempts)
        return context.finish(
            VerificationState.PENDING,
            f"Still pending after {max_attempts} attempts - check manually",
        )

    def _is_now_verified(self, context: VerificationContext) -> bool:
        address = context.record.address
        if self.config.trust_status_endpoint and context.verification_id:
            status = self.client.poll_once(context.chain_id, address, context.verification_id)
            return status is PollStatus.VERIFIED
        return self.client.check_verified(context.chain_id, address).verified

    def _fail(self, context: VerificationContext, detail: str) -> VerificationOutcome:
        # An error raised after cancellation (e.g. forge killed by SIGINT) is not a real failure
        if self.cancel_event.is_set():
            logger.warning("  ⏳ Cancelled: %s", detail)
            return context.finish(VerificationState.PENDING, CANCELLED_DETAIL)
        logger.error("  ✗ %s", detail)
        return context.finish(VerificationState.FAILED, detail)
