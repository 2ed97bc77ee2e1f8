"""
Event delivery for one execution: start, progress, log, warning, error, complete.

Listeners are plain callables passed in by the caller. A listener that raises is
logged and ignored; events never change engine control flow.
"""

import logging

from regtest_scenarios.models import EventKind, EventListener, ExecutionResult, ScriptEvent

_log = logging.getLogger(__name__)


class EventEmitter:
    """Fan-out of ScriptEvent values to zero or more listeners."""

    def __init__(self, *listeners: EventListener | None) -> None:
        self._listeners = [fn for fn in listeners if fn is not None]

    def emit(self, event: ScriptEvent) -> None:
        for fn in self._listeners:
            try:
                fn(event)
            except Exception as e:
                _log.warning("Event listener failed on %s: %s", event.kind.value, e)

    def start(self, message: str | None = None) -> None:
        self.emit(ScriptEvent(kind=EventKind.START, message=message))

    def progress(self, step: int, total: int, message: str) -> None:
        self.emit(ScriptEvent(kind=EventKind.PROGRESS, step=step, total=total, message=message))

    def log(self, message: str) -> None:
        self.emit(ScriptEvent(kind=EventKind.LOG, message=message))

    def warning(self, message: str) -> None:
        self.emit(ScriptEvent(kind=EventKind.WARNING, message=message))

    def error(self, error: str, result: ExecutionResult | None = None) -> None:
        self.emit(ScriptEvent(kind=EventKind.ERROR, error=error, result=result))

    def complete(self, result: ExecutionResult) -> None:
        self.emit(ScriptEvent(kind=EventKind.COMPLETE, result=result))
