"""Broadcast file parsing for broadcast-verifier."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Union

from .constants import CREATE_TRANSACTION_TYPE
from .exceptions import (
    ChainIdNotFoundError,
    InvalidManifestError,
    ManifestNotFoundError,
    NoDeploymentsError,
)
from .types import DeploymentRecord

# broadcast/<Script>.s.sol/<chainId>/run-latest.json
_CHAIN_ID_SEGMENT = re.compile(r"[/\\](\d+)[/\\]")


def extract_chain_id(broadcast_path: Union[Path, str]) -> str:
    """
    Extract the chain ID from a Foundry broadcast file path.

    Args:
        broadcast_path: Path such as broadcast/Deploy.s.sol/42431/run-latest.json

    Returns:
        Chain ID as a decimal string

    Raises:
        ChainIdNotFoundError: If no all-digit directory appears in the path
    """
    match = _CHAIN_ID_SEGMENT.search(str(broadcast_path))
    if not match:
        raise ChainIdNotFoundError(f"Could not extract chain ID from path: {broadcast_path}")
    return match.group(1)


def load_broadcast(file_path: Union[Path, str]) -> Dict[str, Any]:
    """
    Load and sanity-check a broadcast file.

    Args:
        file_path: Path to run-latest.json

    Returns:
        Decoded broadcast document

    Raises:
        ManifestNotFoundError: If the file does not exist
        InvalidManifestError: If the file is not JSON or lacks a transactions list
    """
    path = Path(file_path)
    if not path.is_file():
        raise ManifestNotFoundError(f"Broadcast file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidManifestError(f"Broadcast file is not valid JSON: {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("transactions"), list):
        raise InvalidManifestError(f"Broadcast file has no 'transactions' list: {path}")

    return data


def is_deployment(transaction: Any) -> bool:
    """
    Check whether a broadcast transaction is a named contract creation.

    Args:
        transaction: One entry of the broadcast "transactions" list

    Returns:
        True for CREATE transactions with a non-empty contract name
    """
    if not isinstance(transaction, dict):
        return False
    return (
        transaction.get("transactionType") == CREATE_TRANSACTION_TYPE
        and bool(transaction.get("contractName"))
    )


def parse_deployments(data: Dict[str, Any]) -> List[DeploymentRecord]:
    """
    Turn a broadcast document into deployment records, preserving order.

    CALL transactions and unnamed creations are dropped here and never
    reach the orchestrator.

    Args:
        data: Decoded broadcast document

    Returns:
        List of DeploymentRecord (possibly empty)
    """
    records: List[DeploymentRecord] = []
    for tx in data.get("transactions", []):
        if not is_deployment(tx):
            continue
        records.append(
            DeploymentRecord(
                contract_name=tx["contractName"],
                address=tx.get("contractAddress") or "",
                creation_tx_hash=tx.get("hash") or "",
            )
        )
    return records


def read_deployments(file_path: Union[Path, str]) -> List[DeploymentRecord]:
    """
    Load a broadcast file and return its deployments.

    Raises:
        ManifestNotFoundError: If the file does not exist
        InvalidManifestError: If the file cannot be decoded
        NoDeploymentsError: If no CREATE transactions are present
    """
    records = parse_deployments(load_broadcast(file_path))
    if not records:
        raise NoDeploymentsError(f"No CREATE transactions found in broadcast file: {file_path}")
    return records
