"""Unit tests for engines.declarative.validator."""

from typing import Any

from regtest_scenarios.engines.declarative.validator import parse_kind, validate_script
from regtest_scenarios.models import ActionKind, DeclarativeScript, ScriptAction


def _script(*actions: dict[str, Any], **extra: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "name": "test",
        "description": "a test script",
        "version": "1.0.0",
        "variables": {},
        "actions": list(actions),
    }
    base.update(extra)
    return base


def _wallet(name: str = "alice", var: str | None = None) -> dict[str, Any]:
    params: dict[str, Any] = {"name": name}
    if var:
        params["variableName"] = var
    return {"type": "CREATE_WALLET", "params": params}


class TestDeclarativeShape:
    def test_valid_script(self) -> None:
        report = validate_script(
            _script(_wallet(var="w"), {"type": "MINE_BLOCKS", "params": {"count": 5, "toWallet": "${w}"}})
        )
        assert report.valid is True
        assert report.errors == []

    def test_missing_name(self) -> None:
        report = validate_script(_script(_wallet(), name=""))
        assert not report.valid
        assert "Script name is required" in report.blocking_errors

    def test_no_actions(self) -> None:
        report = validate_script(_script())
        assert "Script must have at least one action" in report.errors

    def test_advisories_are_not_blocking(self) -> None:
        report = validate_script(_script(_wallet(), description="", version=""))
        assert report.valid is False
        assert report.advisories == [
            "Script description is recommended",
            "Script version is recommended",
        ]
        assert report.blocking_errors == []

    def test_missing_type_and_params(self) -> None:
        report = validate_script(_script({"params": {}}, {"type": "CREATE_WALLET"}))
        assert "Action #1 is missing a type" in report.errors
        assert "Action #2 is missing parameters" in report.errors

    def test_invalid_type(self) -> None:
        report = validate_script(_script({"type": "EXPLODE", "params": {}}))
        assert "Action #1 has invalid type: EXPLODE" in report.errors

    def test_lower_case_type_accepted(self) -> None:
        report = validate_script(_script({"type": "create_wallet", "params": {"name": "bob"}}))
        assert report.valid is True

    def test_variable_name_must_be_string(self) -> None:
        report = validate_script(_script({"type": "CREATE_WALLET", "params": {"name": "a", "variableName": 3}}))
        assert "Action #1: variableName must be a string" in report.errors

    def test_idempotent(self) -> None:
        script = _script({"type": "WAIT", "params": {"seconds": -1}}, description="")
        first = validate_script(script)
        second = validate_script(script)
        assert first == second

    def test_accepts_model(self) -> None:
        model = DeclarativeScript(
            name="m",
            description="model",
            actions=[ScriptAction(type=ActionKind.WAIT, params={"seconds": 1})],
        )
        assert validate_script(model).valid is True

    def test_unsupported_type(self) -> None:
        report = validate_script(42)
        assert report.valid is False
        assert report.errors == ["Unsupported script type: int"]


class TestParameterContracts:
    def test_mine_blocks(self) -> None:
        report = validate_script(_script({"type": "MINE_BLOCKS", "params": {"count": 0}}))
        assert "Action #1: MINE_BLOCKS requires a positive count parameter" in report.errors
        assert "Action #1: MINE_BLOCKS requires either toWallet or toAddress parameter" in report.errors

    def test_mine_blocks_fractional_count(self) -> None:
        report = validate_script(_script({"type": "MINE_BLOCKS", "params": {"count": 1.5, "toAddress": "x"}}))
        assert "Action #1: MINE_BLOCKS requires a positive count parameter" in report.errors

    def test_create_transaction_outputs(self) -> None:
        report = validate_script(
            _script(
                {
                    "type": "CREATE_TRANSACTION",
                    "params": {"fromWallet": "a", "outputs": [{"bcrt1q": 0}, {"x": 1, "y": 2}]},
                }
            )
        )
        assert "Action #1: Output #1 requires a positive amount" in report.errors
        assert "Action #1: Output #2 must be an object with a single key-value pair" in report.errors

    def test_create_transaction_requires_outputs(self) -> None:
        report = validate_script(_script({"type": "CREATE_TRANSACTION", "params": {"fromWallet": "a"}}))
        assert "Action #1: CREATE_TRANSACTION requires outputs parameter as an array" in report.errors

    def test_sign_requires_wallet_or_key(self) -> None:
        report = validate_script(_script({"type": "SIGN_TRANSACTION", "params": {"txid": "t"}}))
        assert "Action #1: SIGN_TRANSACTION requires either wallet or privateKey parameter" in report.errors

    def test_broadcast_requires_txid_or_psbt(self) -> None:
        report = validate_script(_script({"type": "BROADCAST_TRANSACTION", "params": {}}))
        assert "Action #1: BROADCAST_TRANSACTION requires either txid or psbt parameter" in report.errors

    def test_multisig(self) -> None:
        report = validate_script(
            _script(
                {
                    "type": "CREATE_MULTISIG",
                    "params": {"name": "ms", "requiredSigners": 3, "totalSigners": 2, "addressType": "P2TR"},
                }
            )
        )
        assert "Action #1: CREATE_MULTISIG requiredSigners cannot be greater than totalSigners" in report.errors
        assert "Action #1: CREATE_MULTISIG addressType must be one of: P2SH, P2WSH, P2SH-P2WSH" in report.errors

    def test_wait(self) -> None:
        report = validate_script(_script({"type": "WAIT", "params": {"seconds": "soon"}}))
        assert "Action #1: WAIT requires a positive seconds parameter" in report.errors

    def test_assert(self) -> None:
        report = validate_script(_script({"type": "ASSERT", "params": {"condition": "1 +"}}))
        assert any(e.startswith("Action #1: ASSERT condition has syntax error") for e in report.errors)
        assert "Action #1: ASSERT requires a message parameter" in report.errors

    def test_assert_with_placeholder_not_compiled(self) -> None:
        report = validate_script(
            _script(
                _wallet(var="w"),
                {"type": "ASSERT", "params": {"condition": "'${w}' == 'alice'", "message": "m"}},
            )
        )
        assert report.valid is True

    def test_custom_syntax_error(self) -> None:
        report = validate_script(_script({"type": "CUSTOM", "params": {"code": "def f(:"}}))
        assert any(e.startswith("Action #1: CUSTOM code has syntax error") for e in report.errors)


class TestVariableReferences:
    def test_forward_reference_rejected(self) -> None:
        report = validate_script(
            _script(
                {"type": "MINE_BLOCKS", "params": {"count": 1, "toWallet": "${w}"}},
                _wallet(var="w"),
            )
        )
        assert report.errors == ['Action #1: Reference to undefined variable "w"']

    def test_declared_variable_ok(self) -> None:
        report = validate_script(_script(_wallet(name="${walletName}"), variables={"walletName": "alice"}))
        assert report.valid is True

    def test_params_count_as_declared(self) -> None:
        script = _script(_wallet(name="${walletName}"))
        assert not validate_script(script).valid
        assert validate_script(script, params={"walletName": "alice"}).valid

    def test_checked_without_declared_variables(self) -> None:
        report = validate_script(_script(_wallet(name="${nobody}"), variables=None))
        assert 'Action #1: Reference to undefined variable "nobody"' in report.errors

    def test_nested_reference(self) -> None:
        report = validate_script(
            _script(
                {
                    "type": "CREATE_TRANSACTION",
                    "params": {"fromWallet": "a", "outputs": [{"bcrt1q": 1}], "label": ["${lbl}"]},
                }
            )
        )
        assert 'Action #1: Reference to undefined variable "lbl"' in report.errors


class TestImperative:
    def test_valid_source(self) -> None:
        assert validate_script("result = backend.create_wallet('a')").valid is True

    def test_syntax_error(self) -> None:
        report = validate_script("def broken(:\n    pass")
        assert report.valid is False
        assert report.errors[0].startswith("Syntax error:")


class TestParseKind:
    def test_values(self) -> None:
        assert parse_kind("MINE_BLOCKS") is ActionKind.MINE_BLOCKS
        assert parse_kind("mine_blocks") is ActionKind.MINE_BLOCKS
        assert parse_kind(ActionKind.WAIT) is ActionKind.WAIT
        assert parse_kind("nope") is None
        assert parse_kind(None) is None
