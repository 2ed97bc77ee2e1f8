"""
Declarative (JSON) scripts: validation, ${name} resolution, summaries, sequential interpreter.

Exports: validate_script, resolve_variables, generate_summary, DeclarativeInterpreter, HANDLERS.
"""

from .actions import HANDLERS, ActionContext
from .interpreter import DeclarativeInterpreter
from .summary import generate_summary
from .validator import parse_kind, validate_script
from .variables import resolve_variables

__all__ = [
    "HANDLERS",
    "ActionContext",
    "DeclarativeInterpreter",
    "generate_summary",
    "parse_kind",
    "resolve_variables",
    "validate_script",
]
