"""
RestrictedPython sandbox shared by imperative scripts, CUSTOM actions and ASSERT expressions.

Allowed: dict, list, str, int, float, bool, range, enumerate, zip, sorted,
len, round, min, max, sum, abs, json.loads/dumps, datetime/timedelta,
Decimal, and injected capabilities (backend, log, progress, sleep, monotonic, params).

Blocked: open, exec, eval, __import__, compile, os, subprocess, etc.
Handlers that could swallow the execution deadline (bare ``except:`` and
``except BaseException``/``SystemExit``/``KeyboardInterrupt``/``GeneratorExit``)
are rejected at compile time.
"""

import ast
import builtins
import json
import operator
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

from RestrictedPython import RestrictingNodeTransformer, compile_restricted, compile_restricted_eval
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)

_CONTAINER_BUILTINS = (
    "list", "dict", "set", "tuple", "len", "range", "min", "max",
    "sum", "abs", "sorted", "enumerate", "any", "all",
)

# Exception classes above Exception; scripts may neither name nor catch them.
_UNCATCHABLE = frozenset({"BaseException", "SystemExit", "KeyboardInterrupt", "GeneratorExit"})

_INPLACE_OPS = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "|=": operator.ior,
    "&=": operator.iand,
}


class ScenarioPolicy(RestrictingNodeTransformer):
    """RestrictedPython policy that keeps the execution deadline uncatchable."""

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> Any:
        if node.type is None:
            self.error(node, "Bare 'except:' is not allowed; catch Exception instead.")
        else:
            types = node.type.elts if isinstance(node.type, ast.Tuple) else [node.type]
            for t in types:
                if isinstance(t, ast.Name) and t.id in _UNCATCHABLE:
                    self.error(node, f"Catching {t.id} is not allowed; catch Exception instead.")
        return super().visit_ExceptHandler(node)


def _inplacevar(op: str, x: Any, y: Any) -> Any:
    """Augmented assignment on plain names (x += 1)."""
    fn = _INPLACE_OPS.get(op)
    if fn is None:
        raise SyntaxError(f"Augmented assignment '{op}' is not allowed")
    return fn(x, y)


def _make_safe_builtins() -> dict[str, Any]:
    """safe_builtins minus the exception classes above Exception."""
    return {k: v for k, v in safe_builtins.items() if k not in _UNCATCHABLE}


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
    }


def _make_extra_globals() -> dict[str, Any]:
    """Extra safe symbols: json (loads/dumps only), datetime, date, timedelta, Decimal."""
    return {
        # Not the module itself: json re-exports codecs, which reaches open().
        "json": SimpleNamespace(loads=json.loads, dumps=json.dumps),
        "datetime": datetime,
        "date": date,
        "timedelta": timedelta,
        "Decimal": Decimal,
    }


def compile_script(script: str, filename: str = "<script>") -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Returns a code object suitable for exec(bytecode, globals).
    """
    code = compile_restricted(script, filename, "exec", policy=ScenarioPolicy)
    if code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return code


def compile_expression(expression: str, filename: str = "<expression>") -> Any:
    """Compile a single restricted expression (ASSERT conditions). Raises SyntaxError on failure."""
    result = compile_restricted_eval(expression, filename, policy=ScenarioPolicy)
    if result.errors:
        raise SyntaxError("; ".join(result.errors))
    if result.code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    return result.code


def build_restricted_globals(context_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Build the globals dict for exec(compiled, globals): safe builtins, guards,
    extras (json, datetime, Decimal) and the injected context.
    """
    safe = _make_safe_builtins()
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    # Container/utility builtins missing from safe_builtins; attribute access stays guarded.
    for name in _CONTAINER_BUILTINS:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            g[name] = obj
    g.update(context_dict)
    return g
