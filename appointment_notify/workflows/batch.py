"""Per-recipient batch execution with failure isolation."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence, TypeVar

from appointment_notify.domain.models import NotificationOutcome, OutcomeStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProcessFn = Callable[[T], "NotificationOutcome | None"]


def run_batch(
    items: Sequence[T],
    process: ProcessFn,
    *,
    key_fn: Callable[[T], str],
    name_fn: Callable[[T], str] = lambda _item: "",
    max_workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> list[NotificationOutcome]:
    """Process every item, isolating failures, and return outcomes in input order.

    ``process`` may return ``None`` to record nothing for an item. An item
    that raises gets a ``failed`` outcome. Once ``cancel_event`` is set, items
    that have not started get a ``skipped``/``cancelled`` outcome.
    """

    def _guarded(item: T) -> NotificationOutcome | None:
        if cancel_event is not None and cancel_event.is_set():
            return NotificationOutcome(
                recipient_key=key_fn(item),
                recipient_name=name_fn(item),
                status=OutcomeStatus.SKIPPED,
                reason="cancelled",
            )
        try:
            return process(item)
        except Exception as exc:  # broad to keep the rest of the batch running
            logger.error("Processing failed for %s: %s", key_fn(item), exc)
            return NotificationOutcome(
                recipient_key=key_fn(item),
                recipient_name=name_fn(item),
                status=OutcomeStatus.FAILED,
                error=str(exc),
            )

    if max_workers <= 1 or len(items) <= 1:
        results = [_guarded(item) for item in items]
    else:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify-batch") as pool:
            futures = [pool.submit(_guarded, item) for item in items]
            results = [future.result() for future in futures]

    return [outcome for outcome in results if outcome is not None]
