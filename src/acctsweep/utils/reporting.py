"""Reporting helpers for acctsweep run reports."""
from __future__ import annotations

import json
from typing import List

from ..types import RunReport, StepStatus

_HEADER_LINE = "═" * 60

_STATUS_LABELS = {
    StepStatus.SKIPPED: "SKIP",
    StepStatus.DRY_RUN: "DRY",
    StepStatus.SUCCEEDED: "OK",
    StepStatus.FAILED: "FAIL",
}


def format_text_report(report: RunReport) -> str:
    """Human readable summary of a run."""

    mode = "DRY RUN" if report.dry_run else "EXECUTE"
    lines: List[str] = [_HEADER_LINE, f"acctsweep report ({mode})", _HEADER_LINE]

    if report.protected:
        lines.append("Protected accounts:")
        for name, reason in report.protected.items():
            lines.append(f"  - {name} ({reason.value})")

    if not report.final_removal_list:
        lines.append("No accounts to process.")
    else:
        lines.append(f"Final removal list ({len(report.final_removal_list)}):")
        for name in report.final_removal_list:
            lines.append(f"  {name}")
            for outcome in report.outcomes_for(name):
                label = _STATUS_LABELS[outcome.status]
                lines.append(f"    [{label:>4}] {outcome.step.value}: {outcome.detail}")

    stats = report.summary()
    lines.append(_HEADER_LINE)
    lines.append(
        "Protected: {protected}  Eligible: {eligible}  "
        "Succeeded: {succeeded}  Failed: {failed}".format(**stats)
    )
    return "\n".join(lines)


def format_json_report(report: RunReport) -> str:
    return json.dumps(report.to_dict(), indent=2)
