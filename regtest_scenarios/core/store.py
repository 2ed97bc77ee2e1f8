"""
Script storage: load/save scripts, read imperative headers, list the catalog
and the scenario templates bundled under `regtest_scenarios/templates`.

Two on-disk kinds, chosen by extension:
- `.json`: a declarative script record.
- `.py`: imperative source whose leading comment block carries metadata:

    # @name Multisig RBF test
    # @description Replace a low-fee multisig spend
    # @version 1.0.0
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, NamedTuple

from regtest_scenarios.core.config import settings
from regtest_scenarios.core.errors import ScriptLoadError
from regtest_scenarios.models import DeclarativeScript, ScriptKind

_log = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^#\s*@(name|description|version|author)\s+(.*?)\s*$")
_SLUG_RE = re.compile(r"[^a-z0-9]+")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class ScriptHeader(NamedTuple):
    name: str | None = None
    description: str | None = None
    version: str | None = None
    author: str | None = None


class ScriptInfo(NamedTuple):
    """Catalog entry for a saved script."""

    name: str
    description: str
    version: str
    kind: ScriptKind
    path: Path


def slugify(name: str) -> str:
    slug = _SLUG_RE.sub("_", name.strip().lower()).strip("_")
    return slug or "script"


def detect_kind(script: Any) -> ScriptKind:
    """Source text is imperative; a mapping or DeclarativeScript is declarative."""
    if isinstance(script, str):
        return ScriptKind.PYTHON
    if isinstance(script, (Mapping, DeclarativeScript)):
        return ScriptKind.JSON
    raise TypeError(f"Unsupported script type: {type(script).__name__}")


def read_header(source: str) -> ScriptHeader:
    """Parse `# @key value` lines from the leading comment block; continuation lines extend description."""
    fields: dict[str, str] = {}
    last: str | None = None
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped:
            if fields:
                break
            continue
        if not stripped.startswith("#"):
            break
        m = _HEADER_RE.match(stripped)
        if m:
            last = m.group(1)
            fields[last] = m.group(2)
        elif last == "description":
            extra = stripped.lstrip("#").strip()
            if extra:
                fields["description"] = f"{fields['description']} {extra}"
    return ScriptHeader(**fields)


def load_script(path: str | Path) -> dict[str, Any] | str:
    """Read a script file: `.json` -> parsed record, anything else -> source text."""
    p = Path(path)
    if not p.is_file():
        raise ScriptLoadError(f"Script file not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ScriptLoadError(f"Failed to load script {p}: {e}") from e
    if p.suffix.lower() != ".json":
        return text
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScriptLoadError(f"Failed to load script {p}: invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ScriptLoadError(f"Failed to load script {p}: top-level JSON value must be an object")
    return data


def save_script(
    name: str,
    content: str | Mapping[str, Any] | DeclarativeScript,
    kind: ScriptKind | str,
    *,
    directory: str | Path | None = None,
) -> Path:
    """Write content under directory (default SCRIPTS_DIR) as <slug>.<ext>; return the path."""
    k = ScriptKind(kind)
    if k is ScriptKind.PYTHON and not isinstance(content, str):
        raise ValueError("Python script content must be source text, not a declarative record")
    target_dir = Path(directory) if directory is not None else settings.SCRIPTS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{slugify(name)}{k.extension}"

    if isinstance(content, DeclarativeScript):
        text = json.dumps(content.model_dump(mode="json"), indent=2)
    elif isinstance(content, Mapping):
        text = json.dumps(content, indent=2)
    else:
        text = content
    if k is ScriptKind.JSON:
        try:
            json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON script content is not valid JSON: {e}") from e

    path.write_text(text, encoding="utf-8")
    _log.info("Saved %s script %r to %s", k.value, name, path)
    return path


def _info_for(path: Path) -> ScriptInfo | None:
    try:
        script = load_script(path)
    except ScriptLoadError as e:
        _log.warning("Skipping unreadable script %s: %s", path, e)
        return None
    if isinstance(script, dict):
        return ScriptInfo(
            name=str(script.get("name") or path.stem),
            description=str(script.get("description") or ""),
            version=str(script.get("version") or ""),
            kind=ScriptKind.JSON,
            path=path,
        )
    header = read_header(script)
    return ScriptInfo(
        name=header.name or path.stem,
        description=header.description or "",
        version=header.version or "",
        kind=ScriptKind.PYTHON,
        path=path,
    )


def list_scripts(directory: str | Path | None = None) -> list[ScriptInfo]:
    """Catalog of `.json` and `.py` scripts in directory, sorted by name."""
    d = Path(directory) if directory is not None else settings.SCRIPTS_DIR
    if not d.is_dir():
        return []
    infos = []
    for path in sorted(d.iterdir()):
        if path.suffix.lower() not in (".json", ".py") or not path.is_file():
            continue
        info = _info_for(path)
        if info is not None:
            infos.append(info)
    return sorted(infos, key=lambda i: i.name.lower())


def list_templates() -> list[ScriptInfo]:
    """Scenario templates shipped with the package, sorted by name."""
    return list_scripts(TEMPLATES_DIR)


def find_template(query: str) -> ScriptInfo | None:
    """Template whose name or file stem equals query (case-insensitive), else the first whose name contains it."""
    q = query.strip().lower()
    templates = list_templates()
    for info in templates:
        if q in (info.name.lower(), info.path.stem.lower()):
            return info
    for info in templates:
        if q and q in info.name.lower():
            return info
    return None


_PYTHON_STARTER = '''\
# @name {name}
# @description {description}
# @version 1.0.0

wallet = backend.create_wallet("{slug}_wallet", {{"disablePrivateKeys": False}})
log.info("Created wallet %s", wallet)

address = backend.get_new_address(wallet)
blocks = backend.mine_blocks(101, to_address=address)
progress(1, 1, "Mined %d blocks" % len(blocks))

result = {{"success": True, "message": "Script completed successfully"}}
'''


def new_script_content(name: str, description: str, kind: ScriptKind | str) -> str | dict[str, Any]:
    """Starter script for the given kind."""
    slug = slugify(name)
    if ScriptKind(kind) is ScriptKind.PYTHON:
        return _PYTHON_STARTER.format(name=name, description=description, slug=slug)
    return {
        "name": name,
        "description": description,
        "version": "1.0.0",
        "variables": {"walletName": f"{slug}_wallet"},
        "actions": [
            {
                "type": "CREATE_WALLET",
                "description": "Create a wallet for testing",
                "params": {
                    "name": "${walletName}",
                    "options": {"disablePrivateKeys": False},
                    "variableName": "wallet",
                },
            },
            {
                "type": "MINE_BLOCKS",
                "description": "Fund the wallet",
                "params": {"count": 101, "toWallet": "${wallet}"},
            },
        ],
    }
