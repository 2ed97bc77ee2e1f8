from collections.abc import Mapping
from typing import Any

import pytest


class MockBackend:
    """In-memory ActionBackend: records every call, returns predictable ids."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self._height = 0
        self._tx = 0

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def create_wallet(self, name: str, options: Mapping[str, Any] | None = None) -> str:
        self._record("create_wallet", name, options)
        return name

    def get_wallet_info(self, wallet: str) -> dict[str, Any]:
        self._record("get_wallet_info", wallet)
        return {"walletname": wallet, "txcount": 0}

    def get_balance(self, wallet: str) -> float:
        self._record("get_balance", wallet)
        return 50.0

    def get_new_address(self, wallet: str, label: str = "", address_type: str | None = None) -> str:
        self._record("get_new_address", wallet)
        return f"bcrt1q{wallet}addr"

    def list_unspent(self, wallet: str, min_conf: int = 0) -> list[dict[str, Any]]:
        self._record("list_unspent", wallet)
        return []

    def mine_blocks(
        self,
        count: int,
        *,
        to_wallet: str | None = None,
        to_address: str | None = None,
    ) -> list[str]:
        self._record("mine_blocks", count, to_wallet=to_wallet, to_address=to_address)
        hashes = [f"block{self._height + i}" for i in range(1, count + 1)]
        self._height += count
        return hashes

    def send_to_address(self, wallet: str, address: str, amount: float, **kwargs: Any) -> str:
        self._record("send_to_address", wallet, address, amount, **kwargs)
        self._tx += 1
        return f"tx{self._tx}"

    def create_transaction(self, from_wallet: str, outputs: Any, **kwargs: Any) -> dict[str, Any]:
        self._record("create_transaction", from_wallet, outputs, **kwargs)
        self._tx += 1
        return {"txid": f"tx{self._tx}", "psbt": "cHNidP8B", "fee": 0.0001}

    def replace_transaction(self, txid: str, **kwargs: Any) -> dict[str, Any]:
        self._record("replace_transaction", txid, **kwargs)
        return {"txid": f"{txid}-bumped", "original_txid": txid, "fee": 0.0002}

    def sign_transaction(self, txid: str, **kwargs: Any) -> dict[str, Any]:
        self._record("sign_transaction", txid, **kwargs)
        return {"txid": txid, "psbt": "cHNidP8B", "complete": True}

    def broadcast_transaction(self, *, txid: str | None = None, psbt: str | None = None) -> str:
        self._record("broadcast_transaction", txid=txid, psbt=psbt)
        return txid or "tx-from-psbt"

    def create_multisig(
        self,
        name: str,
        required_signers: int,
        total_signers: int,
        address_type: str,
    ) -> dict[str, Any]:
        self._record("create_multisig", name, required_signers, total_signers, address_type)
        return {
            "name": name,
            "signers": [f"{name}_signer_{i}" for i in range(1, total_signers + 1)],
            "required_signers": required_signers,
            "total_signers": total_signers,
            "address_type": address_type,
        }


@pytest.fixture
def backend() -> MockBackend:
    return MockBackend()
