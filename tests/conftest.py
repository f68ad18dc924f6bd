"""Shared pytest fixtures for broadcast-verifier tests."""

import json
import subprocess
import threading
import time
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from broadcast_verifier.config import VerifierConfig
from broadcast_verifier.exceptions import ArtifactBuildError, SourceNotFoundError
from broadcast_verifier.types import (
    CheckResult,
    DeploymentRecord,
    PollStatus,
    SubmitResult,
    VerificationRequest,
)

CHAIN_ID = "42431"
ADDRESS_A = "0xa000000000000000000000000000000000000001"
ADDRESS_B = "0xa000000000000000000000000000000000000002"
ADDRESS_C = "0xa000000000000000000000000000000000000003"


class FakeClient:
    """
    Scripted stand-in for VerificationClient.

    already_verified: addresses reported verified on every check
    verified_on_check: address -> 1-based check call that first reports verified
    """

    def __init__(
        self,
        already_verified: Optional[Set[str]] = None,
        verified_on_check: Optional[Dict[str, int]] = None,
        submit_results: Optional[Dict[str, SubmitResult]] = None,
        poll_status: PollStatus = PollStatus.PENDING,
    ):
        self.already_verified = set(already_verified or ())
        self.verified_on_check = dict(verified_on_check or {})
        self.submit_results = dict(submit_results or {})
        self.poll_status = poll_status
        self.check_calls: Counter = Counter()
        self.submit_calls: List[Tuple[str, VerificationRequest]] = []
        self.poll_calls: List[Tuple[str, str]] = []

    def check_verified(self, chain_id: str, address: str) -> CheckResult:
        self.check_calls[address] += 1
        if address in self.already_verified:
            return CheckResult(verified=True, detail="match: exact_match")
        threshold = self.verified_on_check.get(address)
        if threshold is not None and self.check_calls[address] >= threshold:
            return CheckResult(verified=True, detail="match: exact_match")
        return CheckResult(verified=False, detail="not verified")

    def submit(self, chain_id: str, address: str, request: VerificationRequest) -> SubmitResult:
        self.submit_calls.append((address, request))
        return self.submit_results.get(address, SubmitResult(verification_id=f"vid-{address[-4:]}"))

    def poll_once(self, chain_id: str, address: str, verification_id: str) -> PollStatus:
        self.poll_calls.append((address, verification_id))
        return self.poll_status


class FakeResolver:
    """Resolves every name to contracts/<Name>.sol unless listed as missing."""

    def __init__(self, missing: Optional[Set[str]] = None):
        self.missing = set(missing or ())
        self.calls: List[str] = []

    def resolve(self, contract_name: str) -> str:
        self.calls.append(contract_name)
        if contract_name in self.missing:
            raise SourceNotFoundError(f"source not found: {contract_name}")
        return f"contracts/{contract_name}.sol:{contract_name}"


class FakeBuilder:
    """Returns a fixed document, or raises for the listed addresses."""

    def __init__(self, document: Optional[Dict[str, Any]] = None, failing: Optional[Set[str]] = None):
        self.document = document or {"language": "Solidity", "sources": {}}
        self.failing = set(failing or ())
        self.calls: List[Tuple[str, str]] = []

    def build(
        self, address: str, source_identifier: str, cancel_event: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        self.calls.append((address, source_identifier))
        if address in self.failing:
            raise ArtifactBuildError(f"Failed to generate standard JSON input for {source_identifier}")
        return self.document


class FakeForgeProcess:
    """
    Stand-in for subprocess.Popen running forge.

    Calling the instance "starts" the process and returns it. With hang=True
    communicate() keeps timing out until kill() is called.
    """

    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0, hang: bool = False):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.hang = hang
        self.killed = False
        self.calls: List[Tuple[List[str], Dict[str, Any]]] = []

    def __call__(self, cmd: List[str], **kwargs: Any) -> "FakeForgeProcess":
        self.calls.append((cmd, kwargs))
        return self

    def communicate(self, timeout: Optional[float] = None) -> Tuple[str, str]:
        if self.hang and not self.killed:
            time.sleep(timeout or 0)
            raise subprocess.TimeoutExpired(self.calls[-1][0], timeout)
        return self.stdout, self.stderr

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def broadcast_file(fixtures_dir: Path) -> Path:
    """Return the sample broadcast file (chain 42431)."""
    return fixtures_dir / "broadcast" / "DeployTempo.s.sol" / CHAIN_ID / "run-latest.json"


@pytest.fixture
def standard_json_input(fixtures_dir: Path) -> Dict[str, Any]:
    """Load and return the sample standard JSON input."""
    with open(fixtures_dir / "standard_json_input.json") as f:
        return json.load(f)


@pytest.fixture
def config(tmp_path: Path) -> VerifierConfig:
    """Config with a short poll budget and no sleeping."""
    return VerifierConfig(
        verifier_url="https://verifier.example.com",
        poll_interval=0,
        max_poll_attempts=5,
        request_timeout=5,
        project_root=tmp_path,
    )


@pytest.fixture
def record_a() -> DeploymentRecord:
    return DeploymentRecord("FraxProxyAdmin", ADDRESS_A, "0x" + "11" * 32)


@pytest.fixture
def record_b() -> DeploymentRecord:
    return DeploymentRecord("ImplementationMock", ADDRESS_B, "0x" + "33" * 32)


@pytest.fixture
def record_c() -> DeploymentRecord:
    return DeploymentRecord("FraxOFTWalletUpgradeable", ADDRESS_C, "0x" + "55" * 32)
