"""Command line entry point for broadcast-verifier."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import VerifierConfig
from .exceptions import VerificationError
from .logging_config import setup_logger
from .manifest import extract_chain_id, read_deployments
from .orchestrator import Orchestrator
from .report import RULE, render_report

logger = logging.getLogger("broadcast_verifier.cli")

EPILOG = """\
examples:
  broadcast-verifier broadcast/Deploy.s.sol/42431/run-latest.json
  broadcast-verifier broadcast/Deploy.s.sol/42431/run-latest.json --dry-run
  broadcast-verifier run-latest.json --chain-id 42431 --verifier-url https://contracts.tempo.xyz
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="broadcast-verifier",
        description="Verify every contract deployed by a Foundry broadcast file.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("broadcast_file", help="Path to the broadcast run-latest.json file.")
    p.add_argument("--verifier-url", help="Verification service base URL.")
    p.add_argument("--compiler", dest="compiler_version", help="Compiler version string.")
    p.add_argument(
        "--chain-id",
        help="Chain ID. Default: taken from the broadcast path (broadcast/<script>/<chainId>/...).",
    )
    p.add_argument("--dry-run", action="store_true", help="Generate requests without submitting.")
    p.add_argument("--verbose", action="store_true", help="Show detailed output.")
    p.add_argument("--poll-interval", type=float, help="Seconds between poll attempts.")
    p.add_argument("--max-poll-attempts", type=int, help="Poll attempts before reporting pending.")
    p.add_argument("--request-timeout", type=float, help="Per-request HTTP timeout in seconds.")
    p.add_argument("--timeout", dest="run_timeout", type=float, help="Whole-run timeout in seconds.")
    p.add_argument("--workers", dest="max_workers", type=int, help="Contracts verified concurrently. Default: 1.")
    p.add_argument(
        "--skip",
        dest="skip_contracts",
        action="append",
        metavar="NAME",
        help="Contract name to skip (repeatable).",
    )
    p.add_argument(
        "--trust-status-endpoint",
        action="store_true",
        help="Decide poll success from the status-by-id endpoint instead of the contract endpoint.",
    )
    p.add_argument("--project-root", type=Path, help="Foundry project root. Default: current directory.")
    p.add_argument("--log-file", type=Path, help="Also write a DEBUG log to this file.")
    return p


def config_from_args(args: argparse.Namespace) -> VerifierConfig:
    """Layer command line options over environment defaults."""
    return VerifierConfig.from_env(
        verifier_url=args.verifier_url,
        compiler_version=args.compiler_version,
        poll_interval=args.poll_interval,
        max_poll_attempts=args.max_poll_attempts,
        request_timeout=args.request_timeout,
        run_timeout=args.run_timeout,
        max_workers=args.max_workers,
        project_root=args.project_root,
        skip_contracts=frozenset(args.skip_contracts) if args.skip_contracts else None,
        dry_run=args.dry_run or None,
        verbose=args.verbose or None,
        trust_status_endpoint=args.trust_status_endpoint or None,
    )


def main(argv: Optional[List[str]] = None, orchestrator: Optional[Orchestrator] = None) -> int:
    """
    Run the verifier.

    Args:
        argv: Arguments (defaults to sys.argv[1:])
        orchestrator: Pre-built orchestrator, mainly for tests

    Returns:
        0 when every contract is verified (or skipped), 1 otherwise
    """
    args = build_parser().parse_args(argv)
    setup_logger(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    try:
        config = config_from_args(args)
        records = read_deployments(args.broadcast_file)
        chain_id = args.chain_id or extract_chain_id(args.broadcast_file)
    except (VerificationError, ValueError) as e:
        logger.error("Error: %s", e)
        return 1

    logger.info(RULE)
    logger.info("           Contract Verification")
    logger.info(RULE)
    logger.info("Broadcast file: %s", args.broadcast_file)
    logger.info("Chain ID: %s", chain_id)
    logger.info("Verifier URL: %s", config.verifier_url)
    logger.info("Compiler: %s", config.compiler_version)
    if config.dry_run:
        logger.info("Mode: DRY RUN")

    owns_orchestrator = orchestrator is None
    if orchestrator is None:
        orchestrator = Orchestrator(config)
    try:
        report = orchestrator.run(records, chain_id)
    finally:
        if owns_orchestrator:
            orchestrator.client.close()

    for line in render_report(report, verbose=config.verbose):
        print(line)

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
