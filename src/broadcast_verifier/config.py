"""Run configuration for broadcast-verifier."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .constants import (
    CONTRACT_PATH_OVERRIDES,
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_COMPILER_VERSION,
    DEFAULT_MAX_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SEARCH_DIRS,
    DEFAULT_VERIFIER_URL,
    ENV_COMPILER_VERSION,
    ENV_MAX_POLL_ATTEMPTS,
    ENV_POLL_INTERVAL,
    ENV_VERIFIER_URL,
)


@dataclass(frozen=True)
class VerifierConfig:
    """
    Settings shared by the client, the state machine and the orchestrator.

    Built once per run and passed in at construction time; nothing reads
    module-level mutable state.
    """

    verifier_url: str = DEFAULT_VERIFIER_URL
    compiler_version: str = DEFAULT_COMPILER_VERSION
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    run_timeout: Optional[float] = None  # Whole-run deadline in seconds
    max_workers: int = 1
    dry_run: bool = False
    verbose: bool = False
    project_root: Path = field(default_factory=Path.cwd)
    search_dirs: Tuple[str, ...] = DEFAULT_SEARCH_DIRS
    path_overrides: Dict[str, str] = field(
        default_factory=lambda: dict(CONTRACT_PATH_OVERRIDES)
    )
    skip_contracts: FrozenSet[str] = frozenset()
    # Decide poll success from the status-by-id probe instead of the contract-info endpoint
    trust_status_endpoint: bool = False
    forge_binary: str = "forge"
    build_timeout: float = DEFAULT_BUILD_TIMEOUT

    def __post_init__(self) -> None:
        # Normalize so URL joins never produce "//v2"
        object.__setattr__(self, "verifier_url", self.verifier_url.rstrip("/"))
        object.__setattr__(self, "project_root", Path(self.project_root))
        object.__setattr__(self, "skip_contracts", frozenset(self.skip_contracts))

        if self.max_poll_attempts < 1:
            raise ValueError(f"max_poll_attempts must be >= 1, got {self.max_poll_attempts}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be > 0, got {self.request_timeout}")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ValueError(f"run_timeout must be > 0, got {self.run_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "VerifierConfig":
        """
        Create a config from environment variables.

        Reads $VERIFIER_URL, $VERIFIER_COMPILER_VERSION, $VERIFIER_POLL_INTERVAL
        and $VERIFIER_MAX_POLL_ATTEMPTS. Keyword overrides whose value is not
        None take precedence over the environment.

        Args:
            **overrides: Field values, typically from the command line

        Returns:
            VerifierConfig instance

        Raises:
            ValueError: If an environment value cannot be parsed or is out of range
        """
        values: Dict[str, Any] = {}

        if os.environ.get(ENV_VERIFIER_URL):
            values["verifier_url"] = os.environ[ENV_VERIFIER_URL]
        if os.environ.get(ENV_COMPILER_VERSION):
            values["compiler_version"] = os.environ[ENV_COMPILER_VERSION]
        if os.environ.get(ENV_POLL_INTERVAL):
            values["poll_interval"] = float(os.environ[ENV_POLL_INTERVAL])
        if os.environ.get(ENV_MAX_POLL_ATTEMPTS):
            values["max_poll_attempts"] = int(os.environ[ENV_MAX_POLL_ATTEMPTS])

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "VerifierConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
