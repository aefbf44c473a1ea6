"""Slot availability reporting when an appointment is cancelled.

Waitlist matching is not implemented: ``NoWaitlist`` only reports the freed
slot. A ``WaitlistStrategy`` supplied through ``WorkflowDeps.waitlist`` owns
candidate ordering, the confirmation window and fallback to the next
candidate. ``offer_slot`` is called at most once per trigger.
"""

from __future__ import annotations

import logging
from typing import Any

from appointment_notify.domain.errors import PayloadError
from appointment_notify.domain.models import EventTrigger, WaitlistReport, WorkflowResult
from appointment_notify.triggers import CANCELLED_EVENT, parse_event_payload, snake_case_keys
from appointment_notify.workflows.context import WorkflowDeps

logger = logging.getLogger(__name__)

WORKFLOW = CANCELLED_EVENT
RETRIES = 2


class NoWaitlist:
    def offer_slot(self, slot: dict[str, Any]) -> int:
        logger.info("Slot became available: %s at %s", slot.get("date"), slot.get("time"))
        return 0


def run_waitlist_workflow(deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    runner = deps.runner(WORKFLOW, RETRIES, trigger.id)
    strategy = deps.waitlist or NoWaitlist()
    try:
        payload = parse_event_payload(WORKFLOW, trigger.payload)
        slot = payload["cancelled_appointment"]
        if not isinstance(slot, dict):
            raise PayloadError("cancelledAppointment must be an object with date and time")
        slot = snake_case_keys(slot)

        report = runner.run(
            "check-waitlist",
            lambda: WaitlistReport(
                slot_available=True,
                date=str(slot.get("date") or ""),
                time=str(slot.get("time") or ""),
            ),
        ).unwrap()
        # offer_slot is not retried
        report.notified = deps.runner(WORKFLOW, 0, trigger.id).run(
            "offer-slot",
            lambda: strategy.offer_slot(slot),
        ).unwrap()
    except Exception as exc:
        logger.error("Error in waitlist management: %s", exc)
        return WorkflowResult.failed(WORKFLOW, str(exc))

    return WorkflowResult(workflow=WORKFLOW, success=True, data={"waitlist_results": report.to_dict()})
