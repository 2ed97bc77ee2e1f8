"""
Data model for scenario scripts and their execution.

ActionKind, ScriptKind, DeclarativeScript, ExecutionOptions, ExecutionResult, ScriptEvent.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActionKind(str, Enum):
    """Closed set of declarative actions."""

    CREATE_WALLET = "CREATE_WALLET"
    MINE_BLOCKS = "MINE_BLOCKS"
    CREATE_TRANSACTION = "CREATE_TRANSACTION"
    REPLACE_TRANSACTION = "REPLACE_TRANSACTION"
    SIGN_TRANSACTION = "SIGN_TRANSACTION"
    BROADCAST_TRANSACTION = "BROADCAST_TRANSACTION"
    CREATE_MULTISIG = "CREATE_MULTISIG"
    WAIT = "WAIT"
    ASSERT = "ASSERT"
    CUSTOM = "CUSTOM"

    @classmethod
    def _missing_(cls, value: object) -> "ActionKind | None":
        # Scripts written against older tooling use the lower-case form ("create_wallet").
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None

    @property
    def label(self) -> str:
        """'CREATE_WALLET' -> 'create wallet'."""
        return self.value.replace("_", " ").lower()


class ScriptKind(str, Enum):
    """On-disk script format: declarative JSON or imperative Python."""

    JSON = "json"
    PYTHON = "python"

    @property
    def extension(self) -> str:
        return ".json" if self is ScriptKind.JSON else ".py"


class ExecutionStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class EventKind(str, Enum):
    START = "start"
    PROGRESS = "progress"
    LOG = "log"
    WARNING = "warning"
    ERROR = "error"
    COMPLETE = "complete"


# ---------------------------------------------------------------------------
# Scripts
# ---------------------------------------------------------------------------


class ScriptAction(BaseModel):
    """One declarative step: kind, parameters and an optional description."""

    model_config = ConfigDict(frozen=True)

    type: ActionKind
    params: dict[str, Any]
    description: str | None = None


class DeclarativeScript(BaseModel):
    """JSON script: metadata, declared variables and an ordered action list."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    version: str = "1.0.0"
    variables: dict[str, Any] = Field(default_factory=dict)
    actions: list[ScriptAction]


Script = DeclarativeScript | dict[str, Any] | str


class ValidationResult(BaseModel):
    """Outcome of validate_script. `advisories` is the non-blocking subset of `errors`."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    advisories: list[str] = Field(default_factory=list)

    @property
    def blocking_errors(self) -> list[str]:
        return [e for e in self.errors if e not in self.advisories]


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class ExecutionOptions(BaseModel):
    """
    dry_run: summarize only; verbose: log every step; interactive: ask `confirm` before each step.
    params: external variables seeded into the variable table.
    confirm: confirmation policy (prompt text -> accepted?); required when interactive.
    cancel: optional event checked between declarative actions.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dry_run: bool = False
    verbose: bool = False
    interactive: bool = False
    params: dict[str, Any] = Field(default_factory=dict)
    confirm: Callable[[str], bool] | None = None
    cancel: threading.Event | None = None


class StepOutcome(BaseModel):
    action: ActionKind
    status: StepStatus
    result: Any = None
    error: str | None = None


class ExecutionOutputs(BaseModel):
    wallets: list[str] = Field(default_factory=list)
    transactions: list[str] = Field(default_factory=list)
    blocks: list[str] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    status: ExecutionStatus = ExecutionStatus.NOT_STARTED
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    duration_ms: float | None = None
    steps: list[StepOutcome] = Field(default_factory=list)
    outputs: ExecutionOutputs = Field(default_factory=ExecutionOutputs)
    error: str | None = None


class ScriptEvent(BaseModel):
    """Progress/log/completion notification delivered to an execution listener."""

    kind: EventKind
    message: str | None = None
    step: int | None = None
    total: int | None = None
    result: ExecutionResult | None = None
    error: str | None = None


EventListener = Callable[[ScriptEvent], None]
