"""
Static validation of scenario scripts.

validate_script(script) -> ValidationResult. Never raises for malformed input:
every problem is reported as a message in `errors`.

- Imperative (str): must compile with the sandbox compiler.
- Declarative (mapping / DeclarativeScript): shape, per-kind parameter contract,
  variableName type, then ${name} cross-references in action order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from regtest_scenarios.core.store import detect_kind
from regtest_scenarios.engines.declarative.variables import find_placeholders, iter_strings
from regtest_scenarios.engines.script.sandbox import compile_expression, compile_script
from regtest_scenarios.models import ActionKind, DeclarativeScript, ScriptKind, ValidationResult

_log = logging.getLogger(__name__)

MULTISIG_ADDRESS_TYPES = ("P2SH", "P2WSH", "P2SH-P2WSH")

_ADVISORY_DESCRIPTION = "Script description is recommended"
_ADVISORY_VERSION = "Script version is recommended"

ContractCheck = Callable[[Mapping[str, Any], str, list[str]], None]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive(value: Any) -> bool:
    return _is_number(value) and value > 0


# ---------------------------------------------------------------------------
# Per-kind parameter contracts. Each check appends "<prefix>: ..." messages.
# ---------------------------------------------------------------------------


def _check_create_wallet(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("name"):
        errors.append(f"{at}: CREATE_WALLET requires a name parameter")
    if "options" in p and p["options"] is not None and not isinstance(p["options"], Mapping):
        errors.append(f"{at}: CREATE_WALLET options parameter must be an object")


def _check_mine_blocks(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    count = p.get("count")
    if not (_is_positive(count) and float(count).is_integer()):
        errors.append(f"{at}: MINE_BLOCKS requires a positive count parameter")
    if not p.get("toWallet") and not p.get("toAddress"):
        errors.append(f"{at}: MINE_BLOCKS requires either toWallet or toAddress parameter")


def _check_outputs(outputs: Any, at: str, errors: list[str]) -> None:
    for i, output in enumerate(outputs, start=1):
        if not isinstance(output, Mapping) or len(output) != 1:
            errors.append(f"{at}: Output #{i} must be an object with a single key-value pair")
            continue
        address, amount = next(iter(output.items()))
        if not isinstance(address, str) or not address.strip():
            errors.append(f"{at}: Output #{i} is missing an address")
        if not _is_positive(amount):
            errors.append(f"{at}: Output #{i} requires a positive amount")


def _check_create_transaction(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("fromWallet"):
        errors.append(f"{at}: CREATE_TRANSACTION requires a fromWallet parameter")
    outputs = p.get("outputs")
    if not isinstance(outputs, list) or not outputs:
        errors.append(f"{at}: CREATE_TRANSACTION requires outputs parameter as an array")
    else:
        _check_outputs(outputs, at, errors)
    fee_rate = p.get("feeRate")
    if fee_rate is not None and not (_is_number(fee_rate) and fee_rate >= 0):
        errors.append(f"{at}: CREATE_TRANSACTION feeRate must be a non-negative number")


def _check_replace_transaction(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("txid"):
        errors.append(f"{at}: REPLACE_TRANSACTION requires a txid parameter")
    new_fee_rate = p.get("newFeeRate")
    if new_fee_rate is not None and not _is_positive(new_fee_rate):
        errors.append(f"{at}: REPLACE_TRANSACTION newFeeRate must be a positive number")
    new_outputs = p.get("newOutputs")
    if new_outputs is not None:
        if not isinstance(new_outputs, list) or not new_outputs:
            errors.append(f"{at}: REPLACE_TRANSACTION newOutputs must be a non-empty array")
        else:
            _check_outputs(new_outputs, at, errors)


def _check_sign_transaction(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("txid"):
        errors.append(f"{at}: SIGN_TRANSACTION requires a txid parameter")
    if not p.get("wallet") and not p.get("privateKey"):
        errors.append(f"{at}: SIGN_TRANSACTION requires either wallet or privateKey parameter")


def _check_broadcast_transaction(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("txid") and not p.get("psbt"):
        errors.append(f"{at}: BROADCAST_TRANSACTION requires either txid or psbt parameter")


def _check_create_multisig(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not p.get("name"):
        errors.append(f"{at}: CREATE_MULTISIG requires a name parameter")
    required = p.get("requiredSigners")
    total = p.get("totalSigners")
    if not _is_positive(required):
        errors.append(f"{at}: CREATE_MULTISIG requires a positive requiredSigners parameter")
    if not _is_positive(total):
        errors.append(f"{at}: CREATE_MULTISIG requires a positive totalSigners parameter")
    if _is_number(required) and _is_number(total) and required > total:
        errors.append(f"{at}: CREATE_MULTISIG requiredSigners cannot be greater than totalSigners")
    address_type = p.get("addressType")
    if not address_type:
        errors.append(f"{at}: CREATE_MULTISIG requires an addressType parameter")
    elif address_type not in MULTISIG_ADDRESS_TYPES:
        errors.append(
            f"{at}: CREATE_MULTISIG addressType must be one of: {', '.join(MULTISIG_ADDRESS_TYPES)}"
        )


def _check_wait(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    if not _is_positive(p.get("seconds")):
        errors.append(f"{at}: WAIT requires a positive seconds parameter")


def _check_assert(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    condition = p.get("condition")
    if condition is None or condition == "":
        errors.append(f"{at}: ASSERT requires a condition parameter")
    elif not isinstance(condition, (str, bool)):
        errors.append(f"{at}: ASSERT condition must be a string or boolean")
    elif isinstance(condition, str) and not find_placeholders(condition):
        try:
            compile_expression(condition, filename="<assert>")
        except SyntaxError as e:
            errors.append(f"{at}: ASSERT condition has syntax error: {e}")
    if not p.get("message"):
        errors.append(f"{at}: ASSERT requires a message parameter")


def _check_custom(p: Mapping[str, Any], at: str, errors: list[str]) -> None:
    code = p.get("code")
    if not code or not isinstance(code, str):
        errors.append(f"{at}: CUSTOM requires a code parameter as a string")
        return
    try:
        compile_script(code, filename="<custom>")
    except SyntaxError as e:
        errors.append(f"{at}: CUSTOM code has syntax error: {e}")


CONTRACTS: dict[ActionKind, ContractCheck] = {
    ActionKind.CREATE_WALLET: _check_create_wallet,
    ActionKind.MINE_BLOCKS: _check_mine_blocks,
    ActionKind.CREATE_TRANSACTION: _check_create_transaction,
    ActionKind.REPLACE_TRANSACTION: _check_replace_transaction,
    ActionKind.SIGN_TRANSACTION: _check_sign_transaction,
    ActionKind.BROADCAST_TRANSACTION: _check_broadcast_transaction,
    ActionKind.CREATE_MULTISIG: _check_create_multisig,
    ActionKind.WAIT: _check_wait,
    ActionKind.ASSERT: _check_assert,
    ActionKind.CUSTOM: _check_custom,
}


def parse_kind(raw: Any) -> ActionKind | None:
    """ActionKind for a raw `type` value, or None when unknown."""
    if isinstance(raw, ActionKind):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return ActionKind(raw)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Script-level validation
# ---------------------------------------------------------------------------


def _validate_imperative(source: str, errors: list[str]) -> None:
    try:
        compile_script(source)
    except SyntaxError as e:
        errors.append(f"Syntax error: {e}")


def _validate_action(action: Any, index: int, errors: list[str]) -> None:
    at = f"Action #{index + 1}"
    if not isinstance(action, Mapping):
        errors.append(f"{at} must be an object")
        return
    raw_type = action.get("type")
    kind = parse_kind(raw_type)
    if not raw_type:
        errors.append(f"{at} is missing a type")
    elif kind is None:
        errors.append(f"{at} has invalid type: {raw_type}")

    params = action.get("params")
    if not isinstance(params, Mapping):
        errors.append(f"{at} is missing parameters")
        return
    if kind is not None:
        CONTRACTS[kind](params, at, errors)
    if "variableName" in params and not isinstance(params["variableName"], str):
        errors.append(f"{at}: variableName must be a string")


def check_variable_references(
    actions: Iterable[Any],
    declared: Iterable[str],
    errors: list[str],
) -> None:
    """
    Flag ${name} references to names not declared and not produced by an action
    at or before the referencing position.
    """
    known = set(declared)
    for index, action in enumerate(actions):
        if not isinstance(action, Mapping):
            continue
        params = action.get("params")
        if not isinstance(params, Mapping):
            continue
        produced = params.get("variableName")
        if isinstance(produced, str) and produced:
            known.add(produced)
        for text in iter_strings(params):
            for name in find_placeholders(text):
                if name not in known:
                    errors.append(f'Action #{index + 1}: Reference to undefined variable "{name}"')


def _validate_declarative(
    script: Mapping[str, Any],
    errors: list[str],
    advisories: list[str],
    params: Mapping[str, Any] | None,
) -> None:
    if not script.get("name"):
        errors.append("Script name is required")
    if not script.get("description"):
        errors.append(_ADVISORY_DESCRIPTION)
        advisories.append(_ADVISORY_DESCRIPTION)
    if not script.get("version"):
        errors.append(_ADVISORY_VERSION)
        advisories.append(_ADVISORY_VERSION)

    variables = script.get("variables")
    if variables is not None and not isinstance(variables, Mapping):
        errors.append("Script variables must be an object")
        variables = None

    actions = script.get("actions")
    if not isinstance(actions, list) or not actions:
        errors.append("Script must have at least one action")
        return
    for index, action in enumerate(actions):
        _validate_action(action, index, errors)

    declared = set(variables or {}) | set(params or {})
    check_variable_references(actions, declared, errors)


def validate_script(
    script: Any,
    *,
    params: Mapping[str, Any] | None = None,
) -> ValidationResult:
    """
    Validate an imperative (str) or declarative (mapping / DeclarativeScript) script.
    params: names supplied at invocation time count as declared variables.
    """
    errors: list[str] = []
    advisories: list[str] = []
    try:
        kind = detect_kind(script)
    except TypeError as e:
        return ValidationResult(valid=False, errors=[str(e)], advisories=[])
    try:
        if kind is ScriptKind.PYTHON:
            _validate_imperative(script, errors)
        elif isinstance(script, DeclarativeScript):
            _validate_declarative(script.model_dump(mode="json"), errors, advisories, params)
        else:
            _validate_declarative(script, errors, advisories, params)
    except Exception as e:
        _log.exception("Unexpected validator failure")
        errors.append(f"Validation error: {e}")
    return ValidationResult(valid=not errors, errors=errors, advisories=advisories)
