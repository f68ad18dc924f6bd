"""Run-level orchestration for broadcast-verifier."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence, Tuple

from .artifacts import ForgeArtifactBuilder
from .client import VerificationClient
from .config import VerifierConfig
from .machine import Builder, ContractVerifier, Resolver
from .sources import SourceResolver
from .types import DeploymentRecord, VerificationOutcome, VerificationReport, VerificationState

logger = logging.getLogger(__name__)

SKIPPED_DETAIL = "Skipped by configuration"
UNPROCESSED_DETAIL = "Not processed - run cancelled"


class Orchestrator:
    """Runs the per-contract state machine over a deployment list and aggregates the results."""

    def __init__(
        self,
        config: VerifierConfig,
        client: Optional[VerificationClient] = None,
        resolver: Optional[Resolver] = None,
        builder: Optional[Builder] = None,
    ):
        """
        Initialize the orchestrator.

        Collaborators that are not given are built from the config.

        Args:
            config: Run configuration
            client: Verification service client
            resolver: Contract name -> source identifier resolver
            builder: Standard JSON input builder
        """
        self.config = config
        self.client = client or VerificationClient(config)
        self.resolver = resolver or SourceResolver(
            config.project_root,
            overrides=config.path_overrides,
            search_dirs=config.search_dirs,
        )
        self.builder = builder or ForgeArtifactBuilder(
            config.project_root,
            forge_binary=config.forge_binary,
            timeout=config.build_timeout,
        )

    def run(
        self,
        records: Sequence[DeploymentRecord],
        chain_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> VerificationReport:
        """
        Verify every record and build the report.

        Records are independent, so up to config.max_workers run at once.
        When the run is cancelled (deadline, interrupt or the caller setting
        cancel_event), in-flight contracts stop at their next step and every
        record without an outcome is reported PENDING. No record is dropped.

        Args:
            records: Deployments, already filtered to CREATE transactions
            chain_id: Chain ID as a decimal string
            cancel_event: Optional externally controlled cancellation signal

        Returns:
            VerificationReport with outcomes in manifest order
        """
        cancel_event = cancel_event or threading.Event()
        verifier = ContractVerifier(
            self.config, self.client, self.resolver, self.builder, cancel_event=cancel_event
        )

        collected: List[Tuple[int, VerificationOutcome]] = []
        lock = threading.Lock()

        def process(index: int, record: DeploymentRecord) -> None:
            if cancel_event.is_set():
                return
            outcome = self._verify_one(verifier, chain_id, record)
            with lock:
                collected.append((index, outcome))

        timer = None
        if self.config.run_timeout is not None:
            timer = threading.Timer(self.config.run_timeout, self._deadline_reached, [cancel_event])
            timer.daemon = True
            timer.start()

        logger.info("Found %d contracts to verify", len(records))

        try:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = [
                    executor.submit(process, index, record)
                    for index, record in enumerate(records)
                ]
                try:
                    for future in as_completed(futures):
                        future.result()
                except KeyboardInterrupt:
                    logger.warning("Interrupted - cancelling outstanding verifications")
                    cancel_event.set()
                    for future in futures:
                        future.cancel()
        finally:
            if timer is not None:
                timer.cancel()

        by_index = dict(collected)
        outcomes = [
            by_index.get(index) or self._unprocessed(record)
            for index, record in enumerate(records)
        ]
        return VerificationReport.from_outcomes(chain_id, outcomes)

    def _verify_one(
        self, verifier: ContractVerifier, chain_id: str, record: DeploymentRecord
    ) -> VerificationOutcome:
        if record.contract_name in self.config.skip_contracts:
            logger.info("Skipping %s (%s)", record.contract_name, record.address)
            return VerificationOutcome(
                contract_name=record.contract_name,
                address=record.address,
                state=VerificationState.SKIPPED,
                detail=SKIPPED_DETAIL,
            )

        try:
            return verifier.verify(chain_id, record)
        except Exception as e:
            # Contain unexpected errors to the contract that raised them
            logger.exception("Unexpected error verifying %s", record.contract_name)
            return VerificationOutcome(
                contract_name=record.contract_name,
                address=record.address,
                state=VerificationState.FAILED,
                detail=f"Unexpected error: {e}",
            )

    def _deadline_reached(self, cancel_event: threading.Event) -> None:
        logger.warning(
            "Run timeout of %gs reached - cancelling outstanding verifications",
            self.config.run_timeout,
        )
        cancel_event.set()

    @staticmethod
    def _unprocessed(record: DeploymentRecord) -> VerificationOutcome:
        return VerificationOutcome(
            contract_name=record.contract_name,
            address=record.address,
            state=VerificationState.PENDING,
            detail=UNPROCESSED_DETAIL,
        )
