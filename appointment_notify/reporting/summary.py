"""Summary generation for batch workflow results."""

from __future__ import annotations

from collections import Counter
from typing import Any

from appointment_notify.domain.models import NotificationOutcome, OutcomeStatus


def compute_summary(outcomes: list[NotificationOutcome], total_appointments: int) -> dict[str, Any]:
    """Compute aggregate reporting stats from batch outcomes."""
    status_counts = Counter(outcome.status for outcome in outcomes)

    skipped_reasons = Counter(
        outcome.reason or "unknown"
        for outcome in outcomes
        if outcome.status == OutcomeStatus.SKIPPED
    )
    failed_reasons = Counter(
        outcome.reason or outcome.error or "unknown"
        for outcome in outcomes
        if outcome.status == OutcomeStatus.FAILED
    )
    channel_failures = Counter(
        attempt.channel
        for outcome in outcomes
        for attempt in outcome.channels
        if attempt.status == OutcomeStatus.FAILED
    )

    return {
        "total_appointments": total_appointments,
        "sent": status_counts.get(OutcomeStatus.SENT, 0),
        "skipped": {
            "total": status_counts.get(OutcomeStatus.SKIPPED, 0),
            "reasons": dict(skipped_reasons),
        },
        "failed": {
            "total": status_counts.get(OutcomeStatus.FAILED, 0),
            "reasons": dict(failed_reasons),
        },
        "channel_failures": dict(channel_failures),
    }
