"""
ScriptEngine: load, validate, summarize, execute and save scenario scripts.

Dispatches to the declarative interpreter (JSON action lists) or the RestrictedPython
sandbox (imperative Python) by the script's source form. Each execute_script call owns
a fresh variable table and ExecutionResult; nothing is shared between runs.
"""

import logging
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from regtest_scenarios.backends.tracking import TrackingBackend
from regtest_scenarios.core import store
from regtest_scenarios.core.errors import (
    ScriptAbortedError,
    ScriptExecutionError,
    ScriptLoadError,
    ScriptValidationError,
)
from regtest_scenarios.core.events import EventEmitter
from regtest_scenarios.core.tracker import ResultTracker
from regtest_scenarios.engines.declarative import (
    DeclarativeInterpreter,
    generate_summary,
    parse_kind,
    validate_script,
)
from regtest_scenarios.engines.script import ScriptContext, ScriptExecutor
from regtest_scenarios.models import (
    ActionKind,
    DeclarativeScript,
    EventListener,
    ExecutionOptions,
    ExecutionResult,
    ScriptAction,
    ScriptKind,
    StepStatus,
    ValidationResult,
)

_log = logging.getLogger(__name__)


def _kind_of(script: Any) -> ScriptKind | None:
    try:
        return store.detect_kind(script)
    except TypeError:
        return None


def _script_name(script: Any) -> str:
    kind = _kind_of(script)
    if kind is ScriptKind.PYTHON:
        return store.read_header(script).name or "<python script>"
    if isinstance(script, DeclarativeScript):
        return script.name
    if kind is ScriptKind.JSON:
        return str(script.get("name") or "<json script>")
    return "<script>"


def to_declarative(script: Mapping[str, Any] | DeclarativeScript) -> DeclarativeScript:
    """Build the frozen model from a raw record that passed validation."""
    if isinstance(script, DeclarativeScript):
        return script
    actions = []
    for raw in script["actions"]:
        kind = parse_kind(raw.get("type"))
        if kind is None:
            raise ValueError(f"Unknown action type: {raw.get('type')}")
        actions.append(
            ScriptAction(type=kind, params=dict(raw["params"]), description=raw.get("description"))
        )
    return DeclarativeScript(
        name=str(script.get("name") or ""),
        description=str(script.get("description") or ""),
        version=str(script.get("version") or "1.0.0"),
        variables=dict(script.get("variables") or {}),
        actions=actions,
    )


class ScriptEngine:
    """
    execute_script(script, options) -> ExecutionResult

    backend: an ActionBackend (e.g. RpcBackend). listener: receives every ScriptEvent.
    sleep: used by WAIT actions and the sandbox timer (injectable for tests).
    timeout: sandbox wall-clock limit in seconds; None uses SCRIPT_EXEC_TIMEOUT.
    """

    def __init__(
        self,
        backend: Any,
        *,
        listener: EventListener | None = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: int | None = None,
        scripts_dir: str | Path | None = None,
    ) -> None:
        self._backend = backend
        self._listener = listener
        self._sleep = sleep
        self._timeout = timeout
        self._scripts_dir = scripts_dir

    # -- catalog ---------------------------------------------------------

    def load_script(self, path: str | Path) -> dict[str, Any] | str:
        return store.load_script(path)

    def save_script(
        self,
        name: str,
        content: str | Mapping[str, Any] | DeclarativeScript,
        kind: ScriptKind | str,
    ) -> Path:
        return store.save_script(name, content, kind, directory=self._scripts_dir)

    def list_scripts(self) -> list[store.ScriptInfo]:
        return store.list_scripts(self._scripts_dir)

    def new_script(self, name: str, description: str, kind: ScriptKind | str) -> str | dict[str, Any]:
        return store.new_script_content(name, description, kind)

    def list_templates(self) -> list[store.ScriptInfo]:
        return store.list_templates()

    def find_template(self, name: str) -> store.ScriptInfo | None:
        return store.find_template(name)

    def load_template(self, name: str) -> dict[str, Any] | str:
        """Load a bundled template by name or file stem. Raises ScriptLoadError when none matches."""
        info = store.find_template(name)
        if info is None:
            raise ScriptLoadError(f"Template not found: {name}")
        return store.load_script(info.path)

    # -- inspection ------------------------------------------------------

    def validate_script(self, script: Any, *, params: Mapping[str, Any] | None = None) -> ValidationResult:
        return validate_script(script, params=params)

    def generate_summary(self, script: Any) -> str:
        return generate_summary(script)

    # -- execution -------------------------------------------------------

    def execute_script(
        self,
        script: Any,
        options: ExecutionOptions | None = None,
        *,
        listener: EventListener | None = None,
    ) -> ExecutionResult:
        """
        Run script and return its result.

        Raises the underlying error (ScriptValidationError, ActionExecutionError,
        ScriptExecutionError) after marking the result FAILED and emitting an `error`
        event. An interactive decline or cancellation returns an ABORTED result.
        """
        opts = options or ExecutionOptions()
        emitter = EventEmitter(self._listener, listener)
        tracker = ResultTracker()
        name = _script_name(script)

        tracker.start()
        emitter.start(name)
        _log.info("Executing script %s (dry_run=%s)", name, opts.dry_run)
        try:
            if opts.dry_run:
                emitter.log("Dry run - script would do the following:")
                emitter.log(generate_summary(script))
            elif _kind_of(script) is ScriptKind.PYTHON:
                self._run_imperative(script, opts, emitter, tracker)
            else:
                self._run_declarative(script, opts, emitter, tracker)
        except ScriptAbortedError as e:
            result = tracker.abort(e)
            _log.info("Script %s aborted: %s", name, e)
            emitter.warning(str(e))
            emitter.complete(result)
            return result
        except Exception as e:
            result = tracker.fail(e)
            _log.error("Script %s failed: %s", name, e)
            emitter.error(str(e), result)
            raise

        result = tracker.complete()
        _log.info("Script %s completed in %.0f ms", name, result.duration_ms or 0.0)
        emitter.complete(result)
        return result

    def _check(self, script: Any, opts: ExecutionOptions, emitter: EventEmitter) -> None:
        report = validate_script(script, params=opts.params)
        for advisory in report.advisories:
            emitter.warning(advisory)
        if report.blocking_errors:
            raise ScriptValidationError(report.blocking_errors)

    def _run_declarative(
        self,
        script: Mapping[str, Any] | DeclarativeScript,
        opts: ExecutionOptions,
        emitter: EventEmitter,
        tracker: ResultTracker,
    ) -> None:
        self._check(script, opts, emitter)
        model = to_declarative(script)
        DeclarativeInterpreter(
            backend=TrackingBackend(self._backend, tracker.result.outputs),
            emitter=emitter,
            tracker=tracker,
            sleep=self._sleep,
        ).run(model, opts)

    def _run_imperative(
        self,
        source: str,
        opts: ExecutionOptions,
        emitter: EventEmitter,
        tracker: ResultTracker,
    ) -> None:
        self._check(source, opts, emitter)
        if opts.interactive:
            if opts.confirm is None:
                raise ScriptAbortedError("Interactive mode requires a confirmation callback")
            prompt = f"Script Summary:\n{generate_summary(source)}\nDo you want to execute this script?"
            if not opts.confirm(prompt):
                raise ScriptAbortedError("Script execution aborted by user")

        ctx = ScriptContext(
            backend=TrackingBackend(self._backend, tracker.result.outputs),
            variables=dict(opts.params),
            emitter=emitter,
            sleep=self._sleep,
        )
        try:
            value = ScriptExecutor(timeout=self._timeout).execute(source, ctx)
        except Exception as e:
            tracker.add_step(ActionKind.CUSTOM, StepStatus.FAILED, error=e)
            raise ScriptExecutionError(f"Script execution failed: {e}") from e
        tracker.add_step(ActionKind.CUSTOM, StepStatus.SUCCESS, result=value)
        if opts.verbose and value is not None:
            emitter.log(f"Script result: {value!r}")
