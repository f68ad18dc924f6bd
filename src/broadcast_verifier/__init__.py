"""
broadcast-verifier: verify contracts deployed by Foundry broadcast files against a source verification service
"""

from importlib.metadata import PackageNotFoundError, version

from .client import VerificationClient
from .config import VerifierConfig
from .exceptions import (
    ArtifactBuildError,
    ChainIdNotFoundError,
    InvalidManifestError,
    ManifestNotFoundError,
    NoDeploymentsError,
    SourceNotFoundError,
    VerificationError,
)
from .machine import ContractVerifier
from .manifest import read_deployments
from .orchestrator import Orchestrator
from .types import (
    DeploymentRecord,
    VerificationOutcome,
    VerificationReport,
    VerificationRequest,
    VerificationState,
)

try:
    __version__ = version("broadcast-verifier")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "Orchestrator",
    "ContractVerifier",
    "VerificationClient",
    "VerifierConfig",
    "read_deployments",
    "DeploymentRecord",
    "VerificationRequest",
    "VerificationOutcome",
    "VerificationReport",
    "VerificationState",
    "VerificationError",
    "ManifestNotFoundError",
    "InvalidManifestError",
    "NoDeploymentsError",
    "ChainIdNotFoundError",
    "SourceNotFoundError",
    "ArtifactBuildError",
]
