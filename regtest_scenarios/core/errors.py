"""
Error types raised by the loader, validator, interpreter, sandbox and backends.
"""

from __future__ import annotations

from typing import Any


class ScriptError(ValueError):
    """Base class for scenario script failures."""

    pass


class ScriptLoadError(ScriptError):
    """Raised when a script file is missing or cannot be decoded."""

    pass


class ScriptValidationError(ScriptError):
    """Raised when execution is refused because of blocking validation errors."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Script validation failed: " + "; ".join(self.errors))


class VariableResolutionError(ScriptError):
    """Raised when an action parameter references a variable with no value at run time."""

    def __init__(self, names: set[str] | list[str]) -> None:
        self.names = sorted(names)
        quoted = ", ".join(f'"{n}"' for n in self.names)
        super().__init__(f"Unresolved variable reference(s): {quoted}")


class ActionExecutionError(ScriptError):
    """An action failed; carries the failing action's kind and position."""

    def __init__(self, action: str, index: int, cause: BaseException) -> None:
        self.action = action
        self.index = index
        self.cause = cause
        super().__init__(f"Action #{index + 1} ({action}) failed: {cause}")


class ScriptAssertionError(ScriptError):
    """An ASSERT action's condition evaluated to false."""

    pass


class ScriptExecutionError(ScriptError):
    """An imperative script raised during execution."""

    pass


class ScriptAbortedError(ScriptError):
    """The user declined an interactive confirmation or the run was cancelled."""

    pass


class ScriptTimeoutError(TimeoutError):
    """Raised when script execution exceeds SCRIPT_EXEC_TIMEOUT."""

    pass


class BackendError(RuntimeError):
    """Raised by an Action Backend when the node rejects a call."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        method: str | None = None,
        data: Any = None,
    ) -> None:
        self.code = code
        self.method = method
        self.data = data
        prefix = f"{method}: " if method else ""
        suffix = f" (code {code})" if code is not None else ""
        super().__init__(f"{prefix}{message}{suffix}")
