"""
`${name}` placeholder handling for declarative action parameters.

resolve_variables() is pure: it takes a snapshot of the variable table and returns
a new value; the input is never mutated. Unknown names are left in place and
reported in Resolution.missing.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from typing import Any, NamedTuple

PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")


class Resolution(NamedTuple):
    value: Any
    missing: frozenset[str]


def stringify(value: Any) -> str:
    """Text form used when a variable is substituted into a string."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def find_placeholders(text: str) -> list[str]:
    """Names referenced as ${name} in text, in order of appearance."""
    return [m.group(1) for m in PLACEHOLDER_RE.finditer(text)]


def iter_strings(value: Any) -> Iterator[str]:
    """Yield every string found in value, descending into sequences and mappings."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for v in value.values():
            yield from iter_strings(v)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_strings(item)


def resolve_variables(value: Any, snapshot: Mapping[str, Any]) -> Resolution:
    """Substitute ${name} placeholders in value (recursively) from snapshot."""
    missing: set[str] = set()

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in snapshot:
            missing.add(name)
            return match.group(0)
        return stringify(snapshot[name])

    def _walk(v: Any) -> Any:
        if isinstance(v, str):
            return PLACEHOLDER_RE.sub(_sub, v)
        if isinstance(v, Mapping):
            return {k: _walk(item) for k, item in v.items()}
        if isinstance(v, list):
            return [_walk(item) for item in v]
        if isinstance(v, tuple):
            return tuple(_walk(item) for item in v)
        return v

    resolved = _walk(value)
    return Resolution(resolved, frozenset(missing))
