"""Structured JSON logging helpers for workflow events."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any


class JsonFormatter(logging.Formatter):
    """Format log records as JSON with required workflow fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "workflow": getattr(record, "workflow", "unknown"),
            "workflow_step": getattr(record, "workflow_step", "unknown"),
            "recipient_name": mask_recipient_name(getattr(record, "recipient_name", "")),
            "run_id": getattr(record, "run_id", None),
            "status": getattr(record, "status", record.levelname.lower()),
        }

        for key in ("attempt", "error_code", "error_message"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        message = record.getMessage()
        if message:
            payload["message"] = message

        return json.dumps(payload, ensure_ascii=False)


def mask_recipient_name(name: str) -> str:
    """Mask a patient name while keeping enough entropy for debugging."""
    if not name:
        return ""

    visible = 1
    if len(name) <= visible:
        return "*"
    return f"{name[:visible]}{'*' * (len(name) - visible)}"


def get_structured_logger(name: str = "appointment_notify.events") -> logging.Logger:
    """Return a logger configured to emit JSON records."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def log_workflow_event(
    logger: logging.Logger,
    *,
    workflow: str,
    workflow_step: str,
    run_id: str,
    status: str,
    recipient_name: str = "",
    message: str = "",
    attempt: int | None = None,
    error_code: str | None = None,
    error_message: str | None = None,
    level: int = logging.INFO,
) -> None:
    """Emit a structured workflow event."""
    extra: dict[str, Any] = {
        "workflow": workflow,
        "workflow_step": workflow_step,
        "recipient_name": recipient_name,
        "run_id": run_id,
        "status": status,
        "attempt": attempt,
        "error_code": error_code,
        "error_message": error_message,
    }
    logger.log(level, message, extra=extra)
