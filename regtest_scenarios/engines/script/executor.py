"""
ScriptExecutor: execute(script, context) -> result.

Compiles with RestrictedPython, runs in sandbox, returns the script's `result`.
If the script defines execute(variables), its return value is used instead.
SCRIPT_EXEC_TIMEOUT (signal.SIGALRM on Unix) aborts long-running scripts.
SCRIPT_EXTRA_MODULES (comma-separated) exposes whitelisted modules (e.g. math) in script globals.
"""

import importlib
import logging
import re
import signal
import threading
from collections.abc import Callable
from types import ModuleType
from typing import Any

from regtest_scenarios.core.config import settings
from regtest_scenarios.core.errors import ScriptTimeoutError

from .context import ScriptContext
from .sandbox import build_restricted_globals, compile_script

_log = logging.getLogger(__name__)

# Only allow top-level module names (e.g. math, decimal), no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Interval between repeated deadline signals once the timeout has passed.
_REARM_SECONDS = 0.05


class _Deadline(BaseException):
    """Raised inside the script frame by the alarm; never reaches the script's `except Exception`."""


def _reexported_modules(module: ModuleType) -> list[str]:
    return sorted(
        name
        for name, value in vars(module).items()
        if not name.startswith("_") and isinstance(value, ModuleType)
    )


def _inject_extra_modules(g: dict[str, Any]) -> None:
    """
    Inject whitelisted extra modules into script globals. Scripts cannot import; only names in
    SCRIPT_EXTRA_MODULES are available. A module that exposes other modules as public
    attributes (json.codecs, os.path, ...) is refused.
    """
    raw = (settings.SCRIPT_EXTRA_MODULES or "").strip()
    if not raw:
        return
    for name in (s.strip() for s in raw.split(",") if s.strip()):
        if not _SAFE_MODULE_NAME_RE.match(name):
            _log.warning("Ignoring invalid SCRIPT_EXTRA_MODULES entry: %r", name)
            continue
        try:
            module = importlib.import_module(name)
        except ImportError as e:
            _log.warning("SCRIPT_EXTRA_MODULES: cannot import %s: %s", name, e)
            continue
        nested = _reexported_modules(module)
        if nested:
            _log.warning(
                "SCRIPT_EXTRA_MODULES: refusing %s, it exposes modules %s", name, ", ".join(nested)
            )
            continue
        g[name] = module


def _run_with_timeout(fn: Callable[[], Any], timeout_sec: float) -> Any:
    """
    Run fn() under signal.SIGALRM. Unix main thread only.

    The handler raises _Deadline and keeps firing every _REARM_SECONDS until fn
    returns, so a script cannot outlive the deadline by looping in a finally block.
    The deadline is turned into ScriptTimeoutError outside the script frame.
    """
    done = False

    def _handler(signum: int, frame: Any) -> None:
        if not done:
            raise _Deadline()

    old = signal.signal(signal.SIGALRM, _handler)
    try:
        signal.setitimer(signal.ITIMER_REAL, timeout_sec, _REARM_SECONDS)
        try:
            return fn()
        finally:
            done = True
            signal.setitimer(signal.ITIMER_REAL, 0)
    except _Deadline:
        raise ScriptTimeoutError(f"Script execution timed out after {timeout_sec}s") from None
    finally:
        signal.signal(signal.SIGALRM, old)


def _can_use_alarm(timeout: float | None) -> bool:
    return (
        timeout is not None
        and timeout > 0
        and hasattr(signal, "SIGALRM")
        and threading.current_thread() is threading.main_thread()
    )


class ScriptExecutor:
    """
    Run an imperative script in a RestrictedPython sandbox with a ScriptContext.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def execute(self, script: str, context: ScriptContext, *, filename: str = "<script>") -> Any:
        """
        Compile script, exec in restricted globals, return result.
        Raises SyntaxError for invalid source, ScriptTimeoutError when the deadline passes,
        and whatever the script raised otherwise.
        """
        code = compile_script(script, filename)
        g = build_restricted_globals(context.to_dict())
        _inject_extra_modules(g)
        timeout = self._timeout if self._timeout is not None else settings.SCRIPT_EXEC_TIMEOUT
        if timeout and not _can_use_alarm(timeout):
            _log.warning("SIGALRM unavailable here; script runs without a %ss limit", timeout)

        def _run() -> Any:
            exec(code, g)  # noqa: S102 - RestrictedPython compiled code
            execute_fn = g.get("execute")
            if callable(execute_fn):
                return execute_fn(context.variables)
            return g.get("result")

        if _can_use_alarm(timeout):
            return _run_with_timeout(_run, timeout)
        return _run()
