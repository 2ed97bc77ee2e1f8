"""
Sequential interpreter for declarative scripts.

Per action: cancellation check, progress event, optional confirmation (decline -> skipped),
${name} resolution against a snapshot of the variable table, dispatch through HANDLERS,
variableName binding, step recording. The first failure records a failed step and raises
ActionExecutionError; steps and outputs gathered so far stay on the result.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from regtest_scenarios.core.errors import (
    ActionExecutionError,
    ScriptAbortedError,
    VariableResolutionError,
)
from regtest_scenarios.core.events import EventEmitter
from regtest_scenarios.core.tracker import ResultTracker
from regtest_scenarios.models import (
    DeclarativeScript,
    ExecutionOptions,
    ScriptAction,
    StepStatus,
)

from .actions import HANDLERS, ActionContext
from .variables import resolve_variables

_log = logging.getLogger(__name__)


def _describe(action: ScriptAction) -> str:
    return action.description or f"Executing {action.type.label}"


def _preview(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(value)


class DeclarativeInterpreter:
    """Runs a DeclarativeScript's actions in order against a backend."""

    def __init__(
        self,
        *,
        backend: Any,
        emitter: EventEmitter,
        tracker: ResultTracker,
        sleep: Callable[[float], None],
    ) -> None:
        self._backend = backend
        self._emitter = emitter
        self._tracker = tracker
        self._sleep = sleep

    def run(self, script: DeclarativeScript, options: ExecutionOptions) -> dict[str, Any]:
        """Execute every action; returns the final variable table."""
        variables: dict[str, Any] = {**options.params, **script.variables}
        ctx = ActionContext(
            backend=self._backend,
            variables=variables,
            sleep=self._sleep,
            emitter=self._emitter,
        )
        total = len(script.actions)

        for index, action in enumerate(script.actions):
            if options.cancel is not None and options.cancel.is_set():
                raise ScriptAbortedError(f"Script cancelled before action #{index + 1}")

            self._emitter.progress(index + 1, total, _describe(action))

            if options.interactive and not self._confirm(options, index, total, action):
                self._emitter.log(f"Skipped action #{index + 1}: {action.type.value}")
                self._tracker.add_step(action.type, StepStatus.SKIPPED)
                continue

            try:
                resolved = resolve_variables(action.params, dict(variables))
                if resolved.missing:
                    raise VariableResolutionError(resolved.missing)
                params = resolved.value
                result = HANDLERS[action.type](ctx, params)
            except Exception as e:
                self._tracker.add_step(action.type, StepStatus.FAILED, error=e)
                self._emitter.log(f"Action failed: {action.type.value} - {e}")
                _log.warning("Action #%d (%s) failed: %s", index + 1, action.type.value, e)
                raise ActionExecutionError(action.type.value, index, e) from e

            name = params.get("variableName")
            if isinstance(name, str) and name:
                variables[name] = result
            self._tracker.add_step(action.type, StepStatus.SUCCESS, result=result)

            if options.verbose:
                self._emitter.log(f"Completed action: {action.type.value}")
                if result is not None:
                    self._emitter.log(_preview(result))
        return variables

    def _confirm(
        self,
        options: ExecutionOptions,
        index: int,
        total: int,
        action: ScriptAction,
    ) -> bool:
        if options.confirm is None:
            raise ScriptAbortedError("Interactive mode requires a confirmation callback")
        prompt = (
            f"Action {index + 1}/{total}: {action.type.value}\n"
            f"{_preview(action.params)}\n"
            "Execute this action?"
        )
        return bool(options.confirm(prompt))
