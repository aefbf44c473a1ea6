"""Named, retried workflow steps.

A step is the isolation boundary inside a workflow: the body is attempted up
to ``retries + 1`` times and the caller always receives a ``StepResult``,
never the body's exception.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Protocol, TypeVar

from appointment_notify.domain.errors import StepFailedError
from appointment_notify.utils.logging import get_structured_logger, log_workflow_event

T = TypeVar("T")


@dataclass(slots=True)
class StepResult(Generic[T]):
    name: str
    ok: bool
    attempts: int
    value: T | None = None
    error: StepFailedError | None = None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class StepRunner(Protocol):
    def run(self, step_name: str, body: Callable[[], T]) -> StepResult[T]: ...


class RetryingStepRunner:
    """Run step bodies with a per-workflow retry budget."""

    def __init__(
        self,
        retries: int,
        *,
        workflow: str = "unknown",
        run_id: str = "",
        delay_s: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.retries = retries
        self.workflow = workflow
        self.run_id = run_id
        self.delay_s = delay_s
        self._sleep = sleep
        self._logger = get_structured_logger()

    def run(self, step_name: str, body: Callable[[], T]) -> StepResult[T]:
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                value = body()
            except Exception as exc:  # step boundary: surfaced as StepFailedError
                log_workflow_event(
                    self._logger,
                    workflow=self.workflow,
                    workflow_step=step_name,
                    run_id=self.run_id,
                    status="failed" if attempt == attempts else "retrying",
                    attempt=attempt,
                    error_code=type(exc).__name__.upper(),
                    error_message=str(exc),
                    message="Step attempt raised exception",
                    level=logging.WARNING,
                )
                if attempt == attempts:
                    return StepResult(
                        name=step_name,
                        ok=False,
                        attempts=attempt,
                        error=StepFailedError(step_name, attempt, exc),
                    )
                if self.delay_s:
                    self._sleep(self.delay_s)
                continue
            return StepResult(name=step_name, ok=True, attempts=attempt, value=value)
        raise RuntimeError(f"Unreachable retry state for step={step_name}")


StepRunnerFactory = Callable[[str, int, str], StepRunner]


def retrying_runner_factory(delay_s: float = 0.0) -> StepRunnerFactory:
    """Build a factory producing one ``RetryingStepRunner`` per workflow run."""

    def _factory(workflow: str, retries: int, run_id: str) -> StepRunner:
        return RetryingStepRunner(retries, workflow=workflow, run_id=run_id, delay_s=delay_s)

    return _factory
