"""
Scenario engine for regtest bitcoind: run declarative JSON or sandboxed Python scripts
against a wallet/chain backend and report structured results.
"""

from regtest_scenarios.engines import ScriptEngine
from regtest_scenarios.models import (
    ActionKind,
    DeclarativeScript,
    ExecutionOptions,
    ExecutionResult,
    ExecutionStatus,
    ScriptEvent,
    ScriptKind,
)

__version__ = "0.1.0"

__all__ = [
    "ActionKind",
    "DeclarativeScript",
    "ExecutionOptions",
    "ExecutionResult",
    "ExecutionStatus",
    "ScriptEngine",
    "ScriptEvent",
    "ScriptKind",
]
