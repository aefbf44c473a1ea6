"""Follow-up appointment suggestions for completed visits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from appointment_notify.domain.errors import PayloadError
from appointment_notify.domain.models import EventTrigger, Suggestion, WorkflowResult
from appointment_notify.triggers import SUGGEST_FOLLOWUP_EVENT, parse_event_payload, parse_when
from appointment_notify.workflows.context import WorkflowDeps

logger = logging.getLogger(__name__)

WORKFLOW = SUGGEST_FOLLOWUP_EVENT
RETRIES = 1

DEFAULT_APPOINTMENT_TYPE = "General Consultation"
HIGH_PRIORITY_TYPE = "Emergency"


@dataclass(frozen=True, slots=True)
class SuggestionRule:
    follow_up_days: int
    message: str


SUGGESTION_RULES: dict[str, SuggestionRule] = {
    "General Consultation": SuggestionRule(30, "Consider scheduling a follow-up consultation"),
    "Follow-up": SuggestionRule(14, "Schedule next follow-up appointment"),
    "Emergency": SuggestionRule(7, "Important: Schedule follow-up after emergency visit"),
    "Specialist": SuggestionRule(21, "Specialist follow-up recommended"),
}


class LoggingSuggestionSink:
    """Default sink: suggestions are only logged, nothing is persisted."""

    def store(self, suggestion: Suggestion) -> None:
        logger.info("Smart suggestion generated: %s", suggestion.to_dict())


def suggest_followup(patient_id: str, appointment_type: str, completed_date: date) -> Suggestion:
    rule = SUGGESTION_RULES.get(appointment_type, SUGGESTION_RULES[DEFAULT_APPOINTMENT_TYPE])
    return Suggestion(
        patient_id=patient_id,
        suggested_date=completed_date + timedelta(days=rule.follow_up_days),
        message=rule.message,
        appointment_type=appointment_type,
        priority="high" if appointment_type == HIGH_PRIORITY_TYPE else "medium",
    )


def _completed_on(value: object) -> date:
    parsed = parse_when(value)
    if isinstance(parsed, datetime):
        return parsed.date()
    if isinstance(parsed, date):
        return parsed
    raise PayloadError(f"completedDate is not an ISO-8601 date: {value!r}")


def run_suggestion_workflow(deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    runner = deps.runner(WORKFLOW, RETRIES, trigger.id)
    sink = deps.suggestion_sink or LoggingSuggestionSink()
    try:
        payload = parse_event_payload(WORKFLOW, trigger.payload)
        completed = _completed_on(payload["completed_date"])
        suggestion = runner.run(
            "generate-suggestions",
            lambda: suggest_followup(str(payload["patient_id"]), str(payload["appointment_type"]), completed),
        ).unwrap()
        runner.run("store-suggestion", lambda: sink.store(suggestion)).unwrap()
    except Exception as exc:
        logger.error("Error generating smart suggestions: %s", exc)
        return WorkflowResult.failed(WORKFLOW, str(exc))

    return WorkflowResult(workflow=WORKFLOW, success=True, data={"suggestions": suggestion.to_dict()})
