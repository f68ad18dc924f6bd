"""Custom exception classes for broadcast-verifier."""


class VerificationError(Exception):
    """Base exception for verification-related errors."""

    pass


class ManifestNotFoundError(VerificationError, FileNotFoundError):
    """Raised when the broadcast file is not found."""

    pass


class InvalidManifestError(VerificationError, ValueError):
    """Raised when the broadcast file cannot be decoded or has no transaction list."""

    pass


class NoDeploymentsError(VerificationError, ValueError):
    """Raised when the broadcast file contains no CREATE transactions."""

    pass


class ChainIdNotFoundError(VerificationError, ValueError):
    """Raised when the chain ID cannot be determined from the broadcast path."""

    pass


class SourceNotFoundError(VerificationError, LookupError):
    """Raised when a contract name cannot be mapped to a source file."""

    pass


class ArtifactBuildError(VerificationError, RuntimeError):
    """Raised when the standard JSON input for a contract cannot be generated."""

    pass
