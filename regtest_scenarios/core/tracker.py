"""
ResultTracker: owns one ExecutionResult for the duration of a run.

Status only moves forward: NOT_STARTED -> RUNNING -> COMPLETED | FAILED | ABORTED.
Steps are append-only.
"""

from datetime import datetime, timezone
from typing import Any

from regtest_scenarios.models import (
    ActionKind,
    ExecutionResult,
    ExecutionStatus,
    StepOutcome,
    StepStatus,
)

_ALLOWED = {
    ExecutionStatus.NOT_STARTED: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
        ExecutionStatus.ABORTED,
    },
}


class ResultTracker:
    def __init__(self) -> None:
        self.result = ExecutionResult()

    @property
    def status(self) -> ExecutionStatus:
        return self.result.status

    def _transition(self, to: ExecutionStatus) -> None:
        current = self.result.status
        if to not in _ALLOWED.get(current, set()):
            raise RuntimeError(f"Invalid status transition {current.value} -> {to.value}")
        self.result.status = to

    def _finish(self) -> None:
        end = datetime.now(timezone.utc)
        self.result.end_time = end
        self.result.duration_ms = (end - self.result.start_time).total_seconds() * 1000.0

    def start(self) -> None:
        self._transition(ExecutionStatus.RUNNING)

    def add_step(
        self,
        action: ActionKind,
        status: StepStatus,
        *,
        result: Any = None,
        error: BaseException | str | None = None,
    ) -> StepOutcome:
        step = StepOutcome(
            action=action,
            status=status,
            result=result,
            error=str(error) if error is not None else None,
        )
        self.result.steps.append(step)
        return step

    def complete(self) -> ExecutionResult:
        self._transition(ExecutionStatus.COMPLETED)
        self._finish()
        return self.result

    def fail(self, error: BaseException | str) -> ExecutionResult:
        self._transition(ExecutionStatus.FAILED)
        self.result.error = str(error)
        self._finish()
        return self.result

    def abort(self, reason: BaseException | str) -> ExecutionResult:
        self._transition(ExecutionStatus.ABORTED)
        self.result.error = str(reason)
        self._finish()
        return self.result
