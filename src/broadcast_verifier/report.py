"""Report rendering for broadcast-verifier."""

from typing import List

from .types import VerificationOutcome, VerificationReport, VerificationState

RULE = "═" * 63

_ICONS = {
    VerificationState.SUCCESS: "✓",
    VerificationState.ALREADY_VERIFIED: "✓",
    VerificationState.FAILED: "✗",
    VerificationState.PENDING: "⏳",
    VerificationState.SKIPPED: "-",
}


def outcome_line(outcome: VerificationOutcome) -> str:
    """One report line: icon, name, address and terminal state."""
    label = outcome.state.value
    if outcome.dry_run:
        label = f"{label} (dry run)"
    icon = _ICONS[outcome.state]
    return f"  {icon} {outcome.contract_name} ({outcome.address}) {label}"


def render_report(report: VerificationReport, verbose: bool = False) -> List[str]:
    """
    Render the final report.

    Args:
        report: Completed run report
        verbose: Also print each outcome's detail message

    Returns:
        Report lines, without trailing newlines
    """
    lines = [
        RULE,
        "                    Verification Summary",
        RULE,
        "",
    ]

    for outcome in report.outcomes:
        lines.append(outcome_line(outcome))
        if verbose and outcome.detail:
            lines.append(f"      {outcome.detail}")
        if verbose and outcome.verification_id:
            lines.append(f"      verification id: {outcome.verification_id}")

    lines.append("")
    lines.append(f"Already Verified: {report.already_verified}")
    lines.append(f"Newly Verified: {report.newly_verified}")
    lines.append(f"Failed: {report.failed}")
    lines.append(f"Pending: {report.pending}")
    if report.skipped:
        lines.append(f"Skipped: {report.skipped}")
    lines.append(f"Total: {report.total}")
    lines.append("")

    if report.succeeded:
        lines.append("All contracts verified successfully!")
    else:
        lines.append("Some contracts need attention. Check the output above.")

    return lines
