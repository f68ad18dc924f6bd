"""Standard JSON input generation for broadcast-verifier."""

import json
import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .constants import BUILD_CANCEL_CHECK_INTERVAL, DEFAULT_BUILD_TIMEOUT
from .exceptions import ArtifactBuildError

logger = logging.getLogger(__name__)


class ForgeArtifactBuilder:
    """Generates Solidity standard JSON input by shelling out to forge."""

    def __init__(
        self,
        project_root: Union[Path, str],
        forge_binary: str = "forge",
        timeout: float = DEFAULT_BUILD_TIMEOUT,
        check_interval: float = BUILD_CANCEL_CHECK_INTERVAL,
    ):
        self.project_root = Path(project_root)
        self.forge_binary = forge_binary
        self.timeout = timeout
        self.check_interval = check_interval

    def command(self, address: str, source_identifier: str) -> list[str]:
        return [
            self.forge_binary,
            "verify-contract",
            address,
            source_identifier,
            "--show-standard-json-input",
        ]

    def build(
        self,
        address: str,
        source_identifier: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Produce the compilation input for a deployed contract.

        The forge process is killed when the build timeout expires or when
        cancel_event is set, so a run deadline is never held up by a build.

        Args:
            address: Deployed contract address
            source_identifier: "<path>:<ContractName>"
            cancel_event: Optional run cancellation signal

        Returns:
            Decoded standard JSON input document

        Raises:
            ArtifactBuildError: If forge is missing, fails, times out, is
                cancelled or prints non-JSON
        """
        cmd = self.command(address, source_identifier)
        logger.debug("Running %s", " ".join(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                cwd=self.project_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ArtifactBuildError(f"forge executable not found: {self.forge_binary}") from e

        stdout, stderr = self._wait(process, source_identifier, cancel_event)

        if process.returncode != 0:
            raise ArtifactBuildError(
                f"Failed to generate standard JSON input for {source_identifier}: {(stderr or '').strip()}"
            )

        try:
            document = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ArtifactBuildError(
                f"forge returned invalid JSON for {source_identifier}: {e}"
            ) from e

        if not isinstance(document, dict):
            raise ArtifactBuildError(
                f"forge returned {type(document).__name__}, expected a JSON object"
            )
        return document

    def _wait(
        self,
        process: subprocess.Popen,
        source_identifier: str,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[str, str]:
        deadline = time.monotonic() + self.timeout

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._kill(process)
                raise ArtifactBuildError(
                    f"forge timed out after {self.timeout:g}s for {source_identifier}"
                )
            if cancel_event is not None and cancel_event.is_set():
                self._kill(process)
                raise ArtifactBuildError(f"forge cancelled for {source_identifier}")

            try:
                return process.communicate(timeout=min(self.check_interval, remaining))
            except subprocess.TimeoutExpired:
                continue

    @staticmethod
    def _kill(process: subprocess.Popen) -> None:
        process.kill()
        # Reap the child and close its pipes
        process.communicate()
