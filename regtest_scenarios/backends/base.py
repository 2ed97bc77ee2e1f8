"""
ActionBackend: the wallet/chain capabilities scenario scripts drive.

Transaction-producing calls return plain dicts with at least a "txid" key so that
declarative actions can bind the id and later actions can refer to it.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

Outputs = Sequence[Mapping[str, float]]


@runtime_checkable
class ActionBackend(Protocol):
    def create_wallet(self, name: str, options: Mapping[str, Any] | None = None) -> str: ...

    def get_wallet_info(self, wallet: str) -> dict[str, Any]: ...

    def get_balance(self, wallet: str) -> float: ...

    def get_new_address(self, wallet: str, label: str = "", address_type: str | None = None) -> str: ...

    def list_unspent(self, wallet: str, min_conf: int = 0) -> list[dict[str, Any]]: ...

    def mine_blocks(
        self,
        count: int,
        *,
        to_wallet: str | None = None,
        to_address: str | None = None,
    ) -> list[str]: ...

    def send_to_address(
        self,
        wallet: str,
        address: str,
        amount: float,
        *,
        fee_rate: float | None = None,
        rbf: bool = True,
    ) -> str: ...

    def create_transaction(
        self,
        from_wallet: str,
        outputs: Outputs,
        *,
        fee_rate: float | None = None,
        rbf: bool = True,
    ) -> dict[str, Any]: ...

    def replace_transaction(
        self,
        txid: str,
        *,
        new_fee_rate: float | None = None,
        new_outputs: Outputs | None = None,
    ) -> dict[str, Any]: ...

    def sign_transaction(
        self,
        txid: str,
        *,
        wallet: str | None = None,
        private_key: str | None = None,
    ) -> dict[str, Any]: ...

    def broadcast_transaction(self, *, txid: str | None = None, psbt: str | None = None) -> str: ...

    def create_multisig(
        self,
        name: str,
        required_signers: int,
        total_signers: int,
        address_type: str,
    ) -> dict[str, Any]: ...
