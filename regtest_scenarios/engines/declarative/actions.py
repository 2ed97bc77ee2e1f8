"""
Handlers for declarative actions, one per ActionKind.

Each handler receives the ActionContext and the action's already-resolved params and
returns the value bound to `variableName` (a wallet name, txid, block hash list, ...).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from regtest_scenarios.core.errors import ScriptAssertionError
from regtest_scenarios.core.events import EventEmitter
from regtest_scenarios.engines.script.context import ScriptContext
from regtest_scenarios.engines.script.sandbox import (
    build_restricted_globals,
    compile_expression,
    compile_script,
)
from regtest_scenarios.models import ActionKind

_log = logging.getLogger(__name__)


class ActionContext:
    """What handlers may touch: the (tracking) backend, the live variable table, sleep, events."""

    __slots__ = ("backend", "variables", "sleep", "emitter")

    def __init__(
        self,
        *,
        backend: Any,
        variables: dict[str, Any],
        sleep: Callable[[float], None],
        emitter: EventEmitter,
    ) -> None:
        self.backend = backend
        self.variables = variables
        self.sleep = sleep
        self.emitter = emitter


Handler = Callable[[ActionContext, Mapping[str, Any]], Any]


def _txid(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("txid")
    return value


def create_wallet(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    return ctx.backend.create_wallet(p["name"], p.get("options") or {})


def mine_blocks(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    return ctx.backend.mine_blocks(
        int(p["count"]),
        to_wallet=p.get("toWallet") or None,
        to_address=p.get("toAddress") or None,
    )


def create_transaction(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    created = ctx.backend.create_transaction(
        p["fromWallet"],
        p["outputs"],
        fee_rate=p.get("feeRate"),
        rbf=bool(p.get("rbf", True)),
    )
    return _txid(created)


def replace_transaction(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    replaced = ctx.backend.replace_transaction(
        p["txid"],
        new_fee_rate=p.get("newFeeRate"),
        new_outputs=p.get("newOutputs"),
    )
    return _txid(replaced)


def sign_transaction(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    signed = ctx.backend.sign_transaction(
        p["txid"],
        wallet=p.get("wallet") or None,
        private_key=p.get("privateKey") or None,
    )
    if isinstance(signed, Mapping) and signed.get("complete") is False:
        ctx.emitter.log(f"Transaction {p['txid']} is partially signed")
    return _txid(signed)


def broadcast_transaction(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    return ctx.backend.broadcast_transaction(
        txid=p.get("txid") or None,
        psbt=p.get("psbt") or None,
    )


def create_multisig(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    created = ctx.backend.create_multisig(
        p["name"],
        int(p["requiredSigners"]),
        int(p["totalSigners"]),
        p["addressType"],
    )
    if isinstance(created, Mapping):
        return created.get("name", p["name"])
    return created


def wait(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    seconds = float(p["seconds"])
    ctx.emitter.log(f"Waiting {seconds:g} seconds")
    ctx.sleep(seconds)
    return seconds


def evaluate_condition(condition: Any, variables: Mapping[str, Any], backend: Any) -> bool:
    """bool conditions are taken as-is; strings are restricted expressions over the variables."""
    if isinstance(condition, bool):
        return condition
    code = compile_expression(str(condition), filename="<assert>")
    names = {k: v for k, v in variables.items() if not k.startswith("_")}
    # JSON spellings, so "${flag} == true" works after substitution
    names.update({"true": True, "false": False, "null": None})
    g = build_restricted_globals({**names, "variables": dict(variables), "backend": backend})
    return bool(eval(code, g))  # noqa: S307 - RestrictedPython compiled expression


def assert_(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    if not evaluate_condition(p["condition"], ctx.variables, ctx.backend):
        raise ScriptAssertionError(f"Assertion failed: {p['message']}")
    return True


def custom(ctx: ActionContext, p: Mapping[str, Any]) -> Any:
    """
    Run CUSTOM code inline: same dialect and capabilities as imperative scripts,
    but no alarm, and `variables` is the live table (assignments persist).
    """
    code = compile_script(p["code"], filename="<custom>")
    sc = ScriptContext(
        backend=ctx.backend,
        variables=ctx.variables,
        emitter=ctx.emitter,
        sleep=ctx.sleep,
        logger=_log,
    )
    g = build_restricted_globals(sc.to_dict())
    exec(code, g)  # noqa: S102 - RestrictedPython compiled code
    execute_fn = g.get("execute")
    if callable(execute_fn):
        return execute_fn(ctx.variables)
    return g.get("result")


HANDLERS: dict[ActionKind, Handler] = {
    ActionKind.CREATE_WALLET: create_wallet,
    ActionKind.MINE_BLOCKS: mine_blocks,
    ActionKind.CREATE_TRANSACTION: create_transaction,
    ActionKind.REPLACE_TRANSACTION: replace_transaction,
    ActionKind.SIGN_TRANSACTION: sign_transaction,
    ActionKind.BROADCAST_TRANSACTION: broadcast_transaction,
    ActionKind.CREATE_MULTISIG: create_multisig,
    ActionKind.WAIT: wait,
    ActionKind.ASSERT: assert_,
    ActionKind.CUSTOM: custom,
}
