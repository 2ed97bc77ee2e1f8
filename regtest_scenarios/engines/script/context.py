"""
ScriptContext: backend, variables, log, progress, timer for script execution.
"""

import logging
from collections.abc import Callable
from typing import Any

from regtest_scenarios.core.events import EventEmitter

from .modules import make_log_module, make_timer_module

_log = logging.getLogger(__name__)


class ScriptContext:
    """
    Injects backend, variables, log, progress, timer (sleep, monotonic) into the script namespace.
    Nothing else from the host is reachable; the backend is the only way to touch the node.
    """

    def __init__(
        self,
        *,
        backend: Any,
        variables: dict[str, Any] | None = None,
        emitter: EventEmitter | None = None,
        sleep: Callable[[float], None] | None = None,
        logger: logging.Logger | None = None,
        log_extra: dict[str, Any] | None = None,
    ) -> None:
        self._emitter = emitter or EventEmitter()
        self.backend = backend
        self.variables = variables if variables is not None else {}
        self.log = make_log_module(
            emitter=self._emitter, logger_instance=logger, extra=log_extra
        )
        self.timer = make_timer_module(sleep=sleep)

    def progress(self, step: int, total: int, message: str = "") -> None:
        """Report script progress as (step, total, message)."""
        self._emitter.progress(int(step), int(total), str(message))

    def to_dict(self) -> dict[str, Any]:
        """Namespace for exec(compiled, globals)."""
        return {
            "backend": self.backend,
            "variables": self.variables,
            "params": self.variables,
            "log": self.log,
            "progress": self.progress,
            "timer": self.timer,
            "sleep": self.timer.sleep,
            "monotonic": self.timer.monotonic,
            "result": None,
        }
