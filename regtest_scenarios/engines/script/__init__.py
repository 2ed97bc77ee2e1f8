"""
Script engine (Python, RestrictedPython) for imperative scenario scripts.

Exports: ScriptExecutor, ScriptContext, compile_script, compile_expression, build_restricted_globals.
"""

from .context import ScriptContext
from .executor import ScriptExecutor
from .sandbox import build_restricted_globals, compile_expression, compile_script

__all__ = [
    "ScriptContext",
    "ScriptExecutor",
    "compile_script",
    "compile_expression",
    "build_restricted_globals",
]
