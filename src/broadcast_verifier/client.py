"""HTTP client for the source verification service."""

import json
import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from .config import VerifierConfig
from .constants import (
    VERIFIED_INFO_FIELDS,
    VERIFIED_STATUS_VALUES,
    VERIFIED_TEXT_MARKERS,
)
from .types import (
    CheckResult,
    PollStatus,
    SubmitResult,
    Verification,
    VerificationRequest,
)

logger = logging.getLogger(__name__)

UNKNOWN_SUBMIT_ERROR = "Unknown error"


def classify_contract_info(status_code: int, body: Any) -> Verification:
    """
    Classify a contract-info response.

    Any one of matchId, match or verifiedAt being present is proof of a
    verified match. A failed request or a body that is not a JSON object is
    UNKNOWN; callers treat UNKNOWN as "needs verification", so a bad
    response can never produce a false success.

    Args:
        status_code: HTTP status code
        body: Decoded JSON body, or None if it could not be decoded

    Returns:
        Verification.VERIFIED, NOT_VERIFIED or UNKNOWN
    """
    if not 200 <= status_code < 300:
        return Verification.UNKNOWN
    if not isinstance(body, dict):
        return Verification.UNKNOWN
    if any(body.get(name) for name in VERIFIED_INFO_FIELDS):
        return Verification.VERIFIED
    return Verification.NOT_VERIFIED


def _status_means_verified(status: str) -> bool:
    # Exact values only: "unverified" must not match "verified"
    return status.strip().lower() in VERIFIED_STATUS_VALUES


def classify_poll_response(text: Optional[str]) -> PollStatus:
    """
    Classify a status-by-id probe.

    The endpoint may answer with a JSON object carrying "status", with free
    text, or with nothing useful. Only a positive signal is VERIFIED;
    everything else, errors included, is PENDING.
    """
    if not text:
        return PollStatus.PENDING

    try:
        body = json.loads(text)
    except ValueError:
        body = None

    if isinstance(body, dict):
        status = body.get("status")
        if isinstance(status, str) and _status_means_verified(status):
            return PollStatus.VERIFIED
        return PollStatus.PENDING

    if any(marker in text for marker in VERIFIED_TEXT_MARKERS):
        return PollStatus.VERIFIED
    return PollStatus.PENDING


class VerificationClient:
    """
    Protocol adapter for the verification service.

    Every method performs exactly one request; retry and polling policy
    belong to the caller.
    """

    def __init__(self, config: VerifierConfig, session: Optional[requests.Session] = None):
        self.config = config
        if session is None:
            session = requests.Session()
            # One pooled connection per worker thread
            adapter = HTTPAdapter(pool_maxsize=max(config.max_workers, 10))
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

    def contract_url(self, chain_id: str, address: str) -> str:
        return f"{self.config.verifier_url}/v2/contract/{chain_id}/{address}"

    def verify_url(self, chain_id: str, address: str) -> str:
        return f"{self.config.verifier_url}/v2/verify/{chain_id}/{address}"

    def status_url(self, chain_id: str, address: str, verification_id: str) -> str:
        return f"{self.verify_url(chain_id, address)}/{verification_id}"

    def check_verified(self, chain_id: str, address: str) -> CheckResult:
        """
        Ask the service whether an address is verified.

        Args:
            chain_id: Chain ID as a decimal string
            address: Contract address

        Returns:
            CheckResult; verified is False for negative and for unknown answers
        """
        url = self.contract_url(chain_id, address)
        logger.debug("Checking verification status: GET %s", url)

        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            logger.debug("Error checking verification status: %s", e)
            return CheckResult(verified=False, detail=f"request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        verdict = classify_contract_info(response.status_code, body)
        if verdict is Verification.VERIFIED:
            logger.debug(
                "Contract verified at: %s, match: %s", body.get("verifiedAt"), body.get("match")
            )
            return CheckResult(verified=True, detail=f"match: {body.get('match') or 'unknown'}")
        if verdict is Verification.UNKNOWN:
            return CheckResult(verified=False, detail=f"unknown (HTTP {response.status_code})")
        return CheckResult(verified=False, detail="not verified")

    def submit(
        self, chain_id: str, address: str, request: VerificationRequest
    ) -> SubmitResult:
        """
        Submit a verification request.

        A response without verificationId is a failure whatever the HTTP
        status; the service's message (or error) is carried back.

        Returns:
            SubmitResult with either verification_id or error set
        """
        url = self.verify_url(chain_id, address)
        logger.debug("POST %s", url)

        try:
            response = self.session.post(
                url, json=request.to_payload(), timeout=self.config.request_timeout
            )
        except requests.RequestException as e:
            return SubmitResult(error=f"Submission request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            return SubmitResult(
                error=f"Unexpected response (HTTP {response.status_code}): {response.text[:200]}"
            )

        verification_id = body.get("verificationId")
        if not verification_id:
            message = body.get("message") or body.get("error") or UNKNOWN_SUBMIT_ERROR
            return SubmitResult(error=str(message))

        return SubmitResult(verification_id=str(verification_id))

    def poll_once(self, chain_id: str, address: str, verification_id: str) -> PollStatus:
        """
        Probe the status of one submission.

        Unreachable or malformed responses are PENDING, never a failure.
        """
        url = self.status_url(chain_id, address, verification_id)
        logger.debug("GET %s", url)

        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            logger.debug("Error polling status: %s", e)
            return PollStatus.PENDING

        logger.debug("Response: %s", response.text[:200])
        return classify_poll_response(response.text)

    def close(self) -> None:
        self.session.close()
