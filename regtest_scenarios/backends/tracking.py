"""
TrackingBackend: records what a run created (wallets, txids, block hashes) into
ExecutionOutputs while delegating every call to the wrapped backend.
"""

from typing import Any

from regtest_scenarios.models import ExecutionOutputs


def _add(target: list[str], value: Any) -> None:
    if isinstance(value, str) and value and value not in target:
        target.append(value)


class TrackingBackend:
    """Proxy over an ActionBackend. Attributes not overridden here pass straight through."""

    def __init__(self, backend: Any, outputs: ExecutionOutputs) -> None:
        self._backend = backend
        self._outputs = outputs

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._backend, name)

    def create_wallet(self, name: str, options: Any = None) -> str:
        created = self._backend.create_wallet(name, options)
        _add(self._outputs.wallets, created if isinstance(created, str) else name)
        return created

    def mine_blocks(self, count: int, *, to_wallet: str | None = None, to_address: str | None = None) -> list[str]:
        hashes = self._backend.mine_blocks(count, to_wallet=to_wallet, to_address=to_address)
        for h in hashes or []:
            self._outputs.blocks.append(h)
        return hashes

    def send_to_address(self, wallet: str, address: str, amount: float, **kwargs: Any) -> str:
        txid = self._backend.send_to_address(wallet, address, amount, **kwargs)
        _add(self._outputs.transactions, txid)
        return txid

    def create_transaction(self, from_wallet: str, outputs: Any, **kwargs: Any) -> dict[str, Any]:
        created = self._backend.create_transaction(from_wallet, outputs, **kwargs)
        _add(self._outputs.transactions, (created or {}).get("txid"))
        return created

    def replace_transaction(self, txid: str, **kwargs: Any) -> dict[str, Any]:
        replaced = self._backend.replace_transaction(txid, **kwargs)
        _add(self._outputs.transactions, (replaced or {}).get("txid"))
        return replaced

    def broadcast_transaction(self, *, txid: str | None = None, psbt: str | None = None) -> str:
        sent = self._backend.broadcast_transaction(txid=txid, psbt=psbt)
        _add(self._outputs.transactions, sent)
        return sent

    def create_multisig(self, name: str, required_signers: int, total_signers: int, address_type: str) -> dict[str, Any]:
        created = self._backend.create_multisig(name, required_signers, total_signers, address_type)
        for signer in (created or {}).get("signers", []):
            _add(self._outputs.wallets, signer)
        _add(self._outputs.wallets, (created or {}).get("name", name))
        return created
