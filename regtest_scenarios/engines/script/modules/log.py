"""
Log module for script engine: info, warn, error, debug.

Messages go to the Python logger and to the execution's event stream
(info/debug -> log, warn -> warning, error -> warning prefixed "Script error: ").
The `error` event kind is reserved for a failed run.
"""

import logging
from types import SimpleNamespace
from typing import Any

from regtest_scenarios.core.events import EventEmitter

logger = logging.getLogger(__name__)


def make_log_module(
    *,
    emitter: EventEmitter | None = None,
    logger_instance: logging.Logger | None = None,
    extra: dict[str, Any] | None = None,
) -> Any:
    """Build the `log` object: info, warn, error, debug. extra is passed to logger as context."""
    log = logger_instance or logger
    ext = extra or {}

    def _log(level: int, msg: str, *args: Any) -> str:
        text = str(msg) % args if args else str(msg)
        if ext:
            log.log(level, text, extra=ext)
        else:
            log.log(level, text)
        return text

    def info(msg: str, *args: Any) -> None:
        text = _log(logging.INFO, msg, *args)
        if emitter is not None:
            emitter.log(text)

    def debug(msg: str, *args: Any) -> None:
        text = _log(logging.DEBUG, msg, *args)
        if emitter is not None:
            emitter.log(text)

    def warn(msg: str, *args: Any) -> None:
        text = _log(logging.WARNING, msg, *args)
        if emitter is not None:
            emitter.warning(text)

    def error(msg: str, *args: Any) -> None:
        text = _log(logging.ERROR, msg, *args)
        if emitter is not None:
            emitter.warning(f"Script error: {text}")

    return SimpleNamespace(info=info, warn=warn, warning=warn, error=error, debug=debug)
