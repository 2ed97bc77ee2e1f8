"""Unit tests for backends.tracking.TrackingBackend."""

import pytest

from regtest_scenarios.backends.tracking import TrackingBackend
from regtest_scenarios.models import ExecutionOutputs


class TestTrackingBackend:
    def test_records_outputs(self, backend) -> None:
        outputs = ExecutionOutputs()
        tracked = TrackingBackend(backend, outputs)
        tracked.create_wallet("alice")
        tracked.create_wallet("alice")
        tracked.mine_blocks(2, to_wallet="alice")
        created = tracked.create_transaction("alice", [{"bcrt1q": 1.0}])
        tracked.broadcast_transaction(txid=created["txid"])
        tracked.send_to_address("alice", "bcrt1q", 0.1)
        assert outputs.wallets == ["alice"]
        assert outputs.blocks == ["block1", "block2"]
        assert outputs.transactions == ["tx1", "tx2"]

    def test_passthrough(self, backend) -> None:
        tracked = TrackingBackend(backend, ExecutionOutputs())
        assert tracked.get_balance("alice") == 50.0
        assert backend.names() == ["get_balance"]

    def test_private_attributes_hidden(self, backend) -> None:
        tracked = TrackingBackend(backend, ExecutionOutputs())
        with pytest.raises(AttributeError):
            tracked._height

    def test_multisig_wallets(self, backend) -> None:
        outputs = ExecutionOutputs()
        TrackingBackend(backend, outputs).create_multisig("vault", 2, 2, "P2WSH")
        assert outputs.wallets == ["vault_signer_1", "vault_signer_2", "vault"]
