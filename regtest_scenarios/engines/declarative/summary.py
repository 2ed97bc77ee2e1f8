"""
Human-readable script summaries for previews, dry runs and interactive confirmation.

Declarative scripts: action counts per kind, then one numbered entry per action
rendered from a per-kind Jinja2 template. Imperative scripts: header metadata plus
a best-effort scan for known operations and risky calls.
"""

import re
from collections import Counter
from collections.abc import Mapping
from typing import Any

from jinja2 import ChainableUndefined, Environment, Template, TemplateError

from regtest_scenarios.core.store import read_header
from regtest_scenarios.engines.declarative.validator import parse_kind
from regtest_scenarios.models import ActionKind, DeclarativeScript

_ENV: Environment | None = None
_TEMPLATES: dict[ActionKind, Template] = {}


def format_btc(amount: Any) -> str:
    """More decimals for small amounts: 0.00012345 BTC, 0.012345 BTC, 1.5000 BTC."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return f"{amount} BTC"
    if value < 0.001:
        return f"{value:.8f} BTC"
    if value < 0.1:
        return f"{value:.6f} BTC"
    return f"{value:.4f} BTC"


def shorten(text: Any, length: int = 8) -> str:
    """'abcdef...uvwxyz' for ids and addresses longer than 2 * length."""
    s = "" if text is None else str(text)
    if len(s) <= length * 2:
        return s
    return f"{s[:length]}...{s[-length:]}"


def _wallet_options(options: Any) -> list[str]:
    if not isinstance(options, Mapping):
        return []
    out = []
    if options.get("disablePrivateKeys"):
        out.append("without private keys")
    if options.get("blank"):
        out.append("blank")
    if options.get("descriptorWallet") or options.get("descriptors"):
        out.append("descriptor wallet")
    return out


def _outputs(outputs: Any) -> str:
    if not isinstance(outputs, list):
        return ""
    parts = []
    for output in outputs:
        if isinstance(output, Mapping) and output:
            address, amount = next(iter(output.items()))
            parts.append(f"{format_btc(amount)} to {shorten(address, 8)}")
    return ", ".join(parts)


def _first_line(code: Any, limit: int = 50) -> str:
    if not isinstance(code, str):
        return ""
    line = code.split("\n", 1)[0][:limit]
    return line + ("..." if len(code) > limit else "")


_ACTION_TEMPLATES: dict[ActionKind, str] = {
    ActionKind.CREATE_WALLET: """\
   Create wallet "{{ p.name }}"
{% if p.options | wallet_options %}
   Options: {{ p.options | wallet_options | join(", ") }}
{% endif %}""",
    ActionKind.MINE_BLOCKS: """\
   Mine {{ p.count }} blocks {% if p.toWallet %}to wallet "{{ p.toWallet }}"{% else %}to address "{{ p.toAddress }}"{% endif %}

""",
    ActionKind.CREATE_TRANSACTION: """\
   Send from "{{ p.fromWallet }}": {{ p.outputs | outputs }}
{% if p.feeRate %}
   With fee rate: {{ p.feeRate }} sat/vB
{% endif %}
{% if p.rbf %}
   Enabled for RBF (Replace-By-Fee)
{% endif %}""",
    ActionKind.REPLACE_TRANSACTION: """\
   Replace transaction "{{ p.txid | shorten(8) }}"
{% if p.newFeeRate %}
   With new fee rate: {{ p.newFeeRate }} sat/vB
{% endif %}
{% if p.newOutputs %}
   And {{ p.newOutputs | length }} new output(s)
{% endif %}""",
    ActionKind.SIGN_TRANSACTION: """\
{% if p.wallet %}
   Sign with wallet "{{ p.wallet }}"
{% elif p.privateKey %}
   Sign with private key
{% endif %}""",
    ActionKind.BROADCAST_TRANSACTION: """\
{% if p.txid %}
   Broadcast transaction with ID: {{ p.txid | shorten(10) }}
{% elif p.psbt %}
   Broadcast PSBT transaction
{% endif %}""",
    ActionKind.CREATE_MULTISIG: """\
   Create {{ p.requiredSigners }}-of-{{ p.totalSigners }} multisig wallet "{{ p.name }}"
   Using address type: {{ p.addressType }}
""",
    ActionKind.WAIT: """\
   Wait for {{ p.seconds }} seconds
""",
    ActionKind.ASSERT: """\
   Verify: {% if p.condition is string %}{{ p.condition }}{% else %}condition is met{% endif %}

   Error if not: "{{ p.message }}"
""",
    ActionKind.CUSTOM: """\
   Execute custom code
{% if p.code %}
   Code snippet: {{ p.code | first_line }}
{% endif %}""",
}


def _get_summary_env() -> Environment:
    """Shared Jinja2 Environment for action lines (filters, forgiving undefined)."""
    global _ENV
    if _ENV is None:
        _ENV = Environment(
            autoescape=False,
            undefined=ChainableUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        _ENV.filters.update(
            {
                "btc": format_btc,
                "shorten": shorten,
                "wallet_options": _wallet_options,
                "outputs": _outputs,
                "first_line": _first_line,
            }
        )
    return _ENV


def _template_for(kind: ActionKind) -> Template:
    tpl = _TEMPLATES.get(kind)
    if tpl is None:
        tpl = _get_summary_env().from_string(_ACTION_TEMPLATES[kind])
        _TEMPLATES[kind] = tpl
    return tpl


def describe_action(kind: ActionKind, params: Mapping[str, Any]) -> str:
    """Detail lines for one action (may be empty)."""
    return _template_for(kind).render(p=params)


def _summarize_declarative(script: Mapping[str, Any]) -> str:
    actions = script.get("actions") or []
    lines = [
        f"Script: {script.get('name') or '(unnamed)'}",
        f"{script.get('description') or 'No description provided'}",
        "",
        f"Version: {script.get('version') or '1.0.0'}",
        f"Contains {len(actions)} actions:",
        "",
    ]
    kinds = [parse_kind(a.get("type")) if isinstance(a, Mapping) else None for a in actions]
    counts = Counter(k.label if k else "unknown" for k in kinds)
    for label, count in counts.items():
        lines.append(f"- {count} {label} operations")
    lines.append("")
    lines.append("Detailed action list:")
    out = "\n".join(lines) + "\n"
    for index, (action, kind) in enumerate(zip(actions, kinds), start=1):
        action = action if isinstance(action, Mapping) else {}
        label = kind.label if kind else str(action.get("type"))
        out += f"{index}. {action.get('description') or f'Execute {label}'}\n"
        params = action.get("params")
        if kind is not None and isinstance(params, Mapping):
            out += describe_action(kind, params)
    return out


# (label, pattern) pairs counted in imperative source
_OPERATION_PATTERNS = [
    ("wallet creation", r"create_?wallet|createWallet"),
    ("block generation", r"mine_blocks|generate_?to_?address|generateToAddress|generate_?block"),
    ("transaction creation", r"create_?transaction|create_?psbt|createPSBT|send_?to_?address|sendToAddress"),
    ("transaction signing", r"sign_?transaction|sign_?psbt|process_?psbt|signTransaction|processPSBT"),
    ("transaction broadcast", r"broadcast_?transaction|send_?raw_?transaction|broadcastTransaction"),
]

_FEATURE_PATTERNS = [
    ("Multisig wallet operations", r"multisig|quorum"),
    ("Replace-by-fee (RBF) operations", r"replace_?transaction|bump_?fee|\brbf\b|replace_?by_?fee"),
    ("Child-pays-for-parent (CPFP) operations", r"cpfp|child_?pays_?for_?parent"),
    ("Timelock operations", r"timelock|n_?lock_?time|\bCSV\b|\bCLTV\b|check_?sequence_?verify|check_?lock_?time_?verify"),
]

_RISK_PATTERNS = [
    ("wallet deletion", r"delete_?wallet|remove_?wallet|unload_?wallet|deleteWallet|removeWallet"),
    ("transaction abandonment", r"abandon_?transaction|abandonTransaction|abandon transaction"),
    ("block invalidation", r"invalidate_?block|invalidateBlock|invalidate block"),
    ("chain reorganization", r"\breorg|reconsider_?block|reconsiderBlock"),
]


def _summarize_imperative(source: str) -> str:
    header = read_header(source)
    lines = ["Python Script Summary"]
    if header.description:
        lines.append(header.description)
        lines.append("")
    if header.name:
        lines.append(f"Name: {header.name}")
    if header.version:
        lines.append(f"Version: {header.version}")
        lines.append("")
    lines.append("This script includes approximately:")
    for label, pattern in _OPERATION_PATTERNS:
        n = len(re.findall(pattern, source, flags=re.IGNORECASE))
        lines.append(f"- {n} {label} operations")
    for label, pattern in _FEATURE_PATTERNS:
        if re.search(pattern, source, flags=re.IGNORECASE):
            lines.append(f"- {label}")
    for label, pattern in _RISK_PATTERNS:
        if re.search(pattern, source, flags=re.IGNORECASE):
            lines.append("")
            lines.append(f"Warning: This script contains {label} operations")
    return "\n".join(lines) + "\n"


def generate_summary(script: Any) -> str:
    """Summary text for any script; never raises."""
    try:
        if isinstance(script, str):
            return _summarize_imperative(script)
        if isinstance(script, DeclarativeScript):
            return _summarize_declarative(script.model_dump(mode="json"))
        if isinstance(script, Mapping):
            return _summarize_declarative(script)
        return f"Error generating summary: unsupported script type {type(script).__name__}"
    except (TemplateError, TypeError, ValueError, AttributeError) as e:
        return f"Error generating summary: {e}"
