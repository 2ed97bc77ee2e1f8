"""Unit tests for engines.declarative.summary."""

from regtest_scenarios.engines.declarative.summary import (
    describe_action,
    format_btc,
    generate_summary,
    shorten,
)
from regtest_scenarios.models import ActionKind, DeclarativeScript, ScriptAction


class TestFormatting:
    def test_format_btc_precision(self) -> None:
        assert format_btc(0.00012345) == "0.00012345 BTC"
        assert format_btc(0.012345) == "0.012345 BTC"
        assert format_btc(1.5) == "1.5000 BTC"
        assert format_btc("n/a") == "n/a BTC"

    def test_shorten(self) -> None:
        assert shorten("abc") == "abc"
        assert shorten("0123456789abcdefXYZ", 4) == "0123...fXYZ"
        assert shorten(None) == ""


class TestDescribeAction:
    def test_create_wallet_with_options(self) -> None:
        text = describe_action(
            ActionKind.CREATE_WALLET,
            {"name": "watch", "options": {"disablePrivateKeys": True, "blank": True}},
        )
        assert text == '   Create wallet "watch"\n   Options: without private keys, blank\n'

    def test_create_wallet_plain(self) -> None:
        assert describe_action(ActionKind.CREATE_WALLET, {"name": "alice"}) == '   Create wallet "alice"\n'

    def test_mine_blocks(self) -> None:
        assert (
            describe_action(ActionKind.MINE_BLOCKS, {"count": 101, "toWallet": "alice"})
            == '   Mine 101 blocks to wallet "alice"\n'
        )
        assert (
            describe_action(ActionKind.MINE_BLOCKS, {"count": 1, "toAddress": "bcrt1q"})
            == '   Mine 1 blocks to address "bcrt1q"\n'
        )

    def test_create_transaction(self) -> None:
        text = describe_action(
            ActionKind.CREATE_TRANSACTION,
            {"fromWallet": "alice", "outputs": [{"bcrt1qshort": 0.5}], "feeRate": 2, "rbf": True},
        )
        assert 'Send from "alice": 0.5000 BTC to bcrt1qshort' in text
        assert "With fee rate: 2 sat/vB" in text
        assert "Enabled for RBF (Replace-By-Fee)" in text

    def test_assert_and_custom(self) -> None:
        text = describe_action(ActionKind.ASSERT, {"condition": "balance > 1", "message": "broke"})
        assert text == '   Verify: balance > 1\n   Error if not: "broke"\n'
        text = describe_action(ActionKind.CUSTOM, {"code": "x = 1\ny = 2"})
        assert "Code snippet: x = 1" in text

    def test_missing_params_render_empty(self) -> None:
        text = describe_action(ActionKind.CREATE_MULTISIG, {})
        assert "multisig wallet" in text


class TestGenerateSummary:
    def test_declarative(self) -> None:
        script = {
            "name": "funding",
            "description": "Fund a wallet",
            "version": "2.0.0",
            "actions": [
                {"type": "CREATE_WALLET", "params": {"name": "alice"}},
                {"type": "MINE_BLOCKS", "description": "Fund it", "params": {"count": 101, "toWallet": "alice"}},
                {"type": "MINE_BLOCKS", "params": {"count": 1, "toWallet": "alice"}},
            ],
        }
        text = generate_summary(script)
        assert text.startswith("Script: funding\nFund a wallet\n")
        assert "Version: 2.0.0" in text
        assert "Contains 3 actions:" in text
        assert "- 1 create wallet operations" in text
        assert "- 2 mine blocks operations" in text
        assert "1. Execute create wallet\n" in text
        assert "2. Fund it\n" in text

    def test_model_input(self) -> None:
        model = DeclarativeScript(
            name="m",
            actions=[ScriptAction(type=ActionKind.WAIT, params={"seconds": 5})],
        )
        text = generate_summary(model)
        assert "Wait for 5 seconds" in text

    def test_imperative(self) -> None:
        source = (
            "# @name Reorg test\n"
            "# @description Mine, then invalidate\n"
            "# @version 0.2.0\n"
            "\n"
            "w = backend.create_wallet('a')\n"
            "backend.mine_blocks(10, to_wallet=w)\n"
            "backend.call('invalidateblock', h)\n"
        )
        text = generate_summary(source)
        assert text.startswith("Python Script Summary\nMine, then invalidate\n")
        assert "Name: Reorg test" in text
        assert "Version: 0.2.0" in text
        assert "- 1 wallet creation operations" in text
        assert "- 1 block generation operations" in text
        assert "Warning: This script contains block invalidation operations" in text

    def test_never_raises(self) -> None:
        assert generate_summary(object()).startswith("Error generating summary")
        text = generate_summary({"actions": [None, {"type": "BOGUS"}]})
        assert "Contains 2 actions:" in text
