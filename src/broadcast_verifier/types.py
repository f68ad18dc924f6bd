"""Data types and dataclasses for broadcast-verifier."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DeploymentRecord:
    """A contract deployment taken from a broadcast file."""

    contract_name: str  # e.g., "FraxProxyAdmin"
    address: str  # Deployed contract address
    creation_tx_hash: str  # Hash of the CREATE transaction


@dataclass(frozen=True)
class VerificationRequest:
    """Submission body for one contract."""

    address: str
    source_identifier: str  # "<path>:<ContractName>"
    compilation_input: Dict[str, Any]  # Solidity standard JSON input
    compiler_version: str
    creation_tx_hash: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """
        Build the JSON body expected by the verification service.

        Returns:
            Dictionary with stdJsonInput, compilerVersion, contractIdentifier
            and (when known) creationTransactionHash
        """
        payload: Dict[str, Any] = {
            "stdJsonInput": self.compilation_input,
            "compilerVersion": self.compiler_version,
            "contractIdentifier": self.source_identifier,
        }
        if self.creation_tx_hash:
            payload["creationTransactionHash"] = self.creation_tx_hash
        return payload


class VerificationState(Enum):
    """
    Terminal state of one contract.

    Value strings are the labels used in the report.

    - SUCCESS: submitted by this run and now reported verified
    - ALREADY_VERIFIED: reported verified before this run submitted anything
    - FAILED: deterministic error (source, build or submission)
    - PENDING: submitted but not confirmed within the poll budget, or not processed
    - SKIPPED: excluded by configuration, no call made
    """

    SUCCESS = "success"
    ALREADY_VERIFIED = "already_verified"
    FAILED = "failed"
    PENDING = "pending"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class VerificationOutcome:
    """Final record for one contract. Never revised once produced."""

    contract_name: str
    address: str
    state: VerificationState
    detail: str
    verification_id: Optional[str] = None
    dry_run: bool = False

    @property
    def is_verified(self) -> bool:
        return self.state in (VerificationState.SUCCESS, VerificationState.ALREADY_VERIFIED)


class Verification(Enum):
    """Tri-state classification of a contract-info response."""

    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    UNKNOWN = "unknown"


class PollStatus(Enum):
    """Classification of a status-by-id probe."""

    VERIFIED = "verified"
    PENDING = "pending"


@dataclass(frozen=True)
class CheckResult:
    """Result of a contract-info lookup."""

    verified: bool
    detail: str = ""


@dataclass(frozen=True)
class SubmitResult:
    """Result of a verification submission."""

    verification_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.verification_id)


@dataclass
class VerificationReport:
    """Outcomes of one run, in manifest order, with aggregate counters."""

    chain_id: str
    outcomes: List[VerificationOutcome] = field(default_factory=list)
    already_verified: int = 0
    newly_verified: int = 0
    failed: int = 0
    pending: int = 0
    skipped: int = 0

    @classmethod
    def from_outcomes(
        cls, chain_id: str, outcomes: List[VerificationOutcome]
    ) -> "VerificationReport":
        """Build a report, counting every state in a single pass."""
        report = cls(chain_id=chain_id, outcomes=list(outcomes))
        for outcome in report.outcomes:
            match outcome.state:
                case VerificationState.ALREADY_VERIFIED:
                    report.already_verified += 1
                case VerificationState.SUCCESS:
                    report.newly_verified += 1
                case VerificationState.FAILED:
                    report.failed += 1
                case VerificationState.PENDING:
                    report.pending += 1
                case VerificationState.SKIPPED:
                    report.skipped += 1
        return report

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> bool:
        return self.failed == 0 and self.pending == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
