"""Utilities for writing batch run artifacts in JSON and Markdown."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

from appointment_notify.domain.models import NotificationOutcome
from appointment_notify.utils.logging import mask_recipient_name


def write_triage_outputs(
    *,
    artifacts_dir: str | Path,
    workflow: str,
    summary: dict[str, Any],
    outcomes: list[NotificationOutcome],
    report_date: date | None = None,
) -> tuple[Path, Path]:
    """Write JSON and Markdown triage files for one batch run."""
    report_date = report_date or date.today()
    out_dir = Path(artifacts_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    slug = f"{workflow}_{report_date.isoformat()}"
    json_path = out_dir / f"triage_{slug}.json"
    md_path = out_dir / f"triage_{slug}.md"

    records = []
    for outcome in outcomes:
        record = outcome.to_dict()
        record["recipient_name"] = mask_recipient_name(outcome.recipient_name)
        records.append(record)

    payload = {
        "workflow": workflow,
        "date": report_date.isoformat(),
        "summary": summary,
        "records": records,
    }
    json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    md_lines = [
        f"# Triage Report: {workflow} ({report_date.isoformat()})",
        "",
        "## Summary",
        f"- Total appointments: {summary['total_appointments']}",
        f"- Sent: {summary['sent']}",
        f"- Skipped: {summary['skipped']['total']}",
        f"- Failed: {summary['failed']['total']}",
        "",
        "## Skipped Reasons",
    ]

    if summary["skipped"]["reasons"]:
        for reason, count in summary["skipped"]["reasons"].items():
            md_lines.append(f"- {reason}: {count}")
    else:
        md_lines.append("- none")

    md_lines.append("")
    md_lines.append("## Failed Reasons")
    if summary["failed"]["reasons"]:
        for reason, count in summary["failed"]["reasons"].items():
            md_lines.append(f"- {reason}: {count}")
    else:
        md_lines.append("- none")

    md_lines.extend(["", "## Records", ""])
    for record in records:
        reason = record.get("reason") or record.get("error")
        reason_part = f" ({reason})" if reason else ""
        md_lines.append(f"- {record['recipient_key']} {record['recipient_name']}: {record['status']}{reason_part}")

    md_path.write_text("\n".join(md_lines) + "\n", encoding="utf-8")
    return json_path, md_path
