"""Top-level appointment notification command line interface."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date as Date
from datetime import datetime, time
from pathlib import Path
from typing import Any, Sequence

from appointment_notify.domain.models import WorkflowResult
from appointment_notify.jobs.config import resolve_config
from appointment_notify.jobs.scheduler import build_scheduler, configure_logging
from appointment_notify.jobs.tasks import build_runtime, emit_event, run_schedule
from appointment_notify.triggers import EVENT_FIELDS, FOLLOWUP_SCHEDULE, REMINDER_SCHEDULE

logger = logging.getLogger(__name__)

SCHEDULE_CHOICES = {
    "reminders": REMINDER_SCHEDULE,
    "followups": FOLLOWUP_SCHEDULE,
}


def _payload_arg(value: str) -> dict[str, Any]:
    text = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"--payload must be JSON or @path-to-json: {exc}") from exc
    if not isinstance(payload, dict):
        raise argparse.ArgumentTypeError("--payload must be a JSON object")
    return payload


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="appointment-notify", description="Appointment notification workflows")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a daily batch workflow now")
    run_parser.add_argument("workflow", choices=sorted(SCHEDULE_CHOICES), help="Batch workflow to run")
    run_parser.add_argument(
        "--date",
        type=Date.fromisoformat,
        help="Run as if the cron fired on this day (YYYY-MM-DD); defaults to today",
    )
    run_parser.set_defaults(handler=_handle_run)

    emit_parser = subparsers.add_parser("emit", help="Deliver an appointment event to its workflow")
    emit_parser.add_argument("event", choices=sorted(EVENT_FIELDS), help="Event name")
    emit_parser.add_argument("--payload", type=_payload_arg, required=True, help="JSON payload or @file.json")
    emit_parser.add_argument("--id", dest="event_id", help="Delivery id of the event; repeated ids are not re-sent")
    emit_parser.set_defaults(handler=_handle_emit)

    schedule_parser = subparsers.add_parser("schedule", help="Start the cron scheduler process")
    schedule_parser.set_defaults(handler=_handle_schedule)

    return parser


def _print_result(result: WorkflowResult) -> int:
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.success else 1


def _handle_run(args: argparse.Namespace) -> int:
    config = resolve_config()
    fired_at = None
    if args.date:
        fired_at = datetime.combine(args.date, time(9, 0), tzinfo=config.timezone)
    result = run_schedule(
        SCHEDULE_CHOICES[args.workflow],
        fired_at=fired_at,
        router=build_runtime(config),
    )
    return _print_result(result)


def _handle_emit(args: argparse.Namespace) -> int:
    return _print_result(emit_event(args.event, args.payload, event_id=args.event_id))


def _handle_schedule(_args: argparse.Namespace) -> int:
    host = build_scheduler()
    logger.info("Starting scheduler process")
    host.start()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
