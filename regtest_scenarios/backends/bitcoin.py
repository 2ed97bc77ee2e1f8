"""
RpcBackend: ActionBackend over a regtest bitcoind.

Transactions built by create_transaction are kept as PSBTs keyed by txid until
they are broadcast, so declarative scripts can sign and broadcast by id.
Multisig setup creates one descriptor signer wallet per key and a watch-only
wallet importing the sortedmulti descriptor.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from regtest_scenarios.core.errors import BackendError

from .base import Outputs
from .rpc import BitcoinRpcClient

_log = logging.getLogger(__name__)

# bitcoind error codes
RPC_WALLET_ERROR = -4
RPC_WALLET_ALREADY_LOADED = -35

# [fingerprint/origin/path]xpub
_KEY_ORIGIN_RE = re.compile(r"\[([0-9a-fA-F]{8})((?:/[0-9]+[hH']?)*)\]([1-9A-HJ-NP-Za-km-z]{100,})")

_MULTISIG_WRAPPERS = {
    "P2SH": "sh({})",
    "P2WSH": "wsh({})",
    "P2SH-P2WSH": "sh(wsh({}))",
}


def _outputs_list(outputs: Outputs) -> list[dict[str, float]]:
    return [dict(o) for o in outputs]


class RpcBackend:
    """Wallet/chain operations for scenario scripts, backed by bitcoind RPC."""

    def __init__(self, rpc: BitcoinRpcClient | None = None) -> None:
        self._rpc = rpc or BitcoinRpcClient()
        self._psbts: dict[str, str] = {}
        self._owners: dict[str, str] = {}

    def call(self, method: str, *params: Any, wallet: str | None = None) -> Any:
        """Raw RPC escape hatch for scripts that need a call not covered below."""
        return self._rpc.call(method, *params, wallet=wallet)

    # -- wallets ---------------------------------------------------------

    def create_wallet(self, name: str, options: Mapping[str, Any] | None = None) -> str:
        """Create (or load, if it already exists on disk) a wallet; returns its name."""
        opts = dict(options or {})
        try:
            self._rpc.call(
                "createwallet",
                wallet_name=name,
                disable_private_keys=bool(opts.get("disablePrivateKeys", False)),
                blank=bool(opts.get("blank", False)),
                passphrase=opts.get("passphrase", ""),
                avoid_reuse=bool(opts.get("avoidReuse", False)),
                descriptors=bool(opts.get("descriptors", opts.get("descriptorWallet", True))),
            )
        except BackendError as e:
            if e.code != RPC_WALLET_ERROR or "already exists" not in str(e):
                raise
            _log.info("Wallet %s exists; loading it", name)
            try:
                self._rpc.call("loadwallet", name)
            except BackendError as load_err:
                if load_err.code != RPC_WALLET_ALREADY_LOADED:
                    raise
        return name

    def get_wallet_info(self, wallet: str) -> dict[str, Any]:
        return self._rpc.call("getwalletinfo", wallet=wallet)

    def get_balance(self, wallet: str) -> float:
        return float(self._rpc.call("getbalance", wallet=wallet))

    def get_new_address(self, wallet: str, label: str = "", address_type: str | None = None) -> str:
        if address_type:
            return self._rpc.call("getnewaddress", label, address_type, wallet=wallet)
        return self._rpc.call("getnewaddress", label, wallet=wallet)

    def list_unspent(self, wallet: str, min_conf: int = 0) -> list[dict[str, Any]]:
        return self._rpc.call("listunspent", min_conf, wallet=wallet)

    # -- chain -----------------------------------------------------------

    def mine_blocks(
        self,
        count: int,
        *,
        to_wallet: str | None = None,
        to_address: str | None = None,
    ) -> list[str]:
        """Mine count blocks to an address (or a fresh address of to_wallet); returns block hashes."""
        if count <= 0:
            raise ValueError("count must be positive")
        address = to_address or (self.get_new_address(to_wallet) if to_wallet else None)
        if not address:
            raise ValueError("mine_blocks requires to_wallet or to_address")
        return list(self._rpc.call("generatetoaddress", int(count), address))

    # -- transactions ----------------------------------------------------

    def send_to_address(
        self,
        wallet: str,
        address: str,
        amount: float,
        *,
        fee_rate: float | None = None,
        rbf: bool = True,
    ) -> str:
        named: dict[str, Any] = {"address": address, "amount": amount, "replaceable": rbf}
        if fee_rate is not None:
            named["fee_rate"] = fee_rate
        txid = self._rpc.call("sendtoaddress", wallet=wallet, **named)
        self._owners[txid] = wallet
        return txid

    def create_transaction(
        self,
        from_wallet: str,
        outputs: Outputs,
        *,
        fee_rate: float | None = None,
        rbf: bool = True,
    ) -> dict[str, Any]:
        """Funded, unsigned PSBT from from_wallet; returns {"txid", "psbt", "fee"}."""
        options: dict[str, Any] = {"replaceable": rbf}
        if fee_rate is not None:
            options["fee_rate"] = fee_rate
        funded = self._rpc.call(
            "walletcreatefundedpsbt", [], _outputs_list(outputs), 0, options, wallet=from_wallet
        )
        psbt = funded["psbt"]
        txid = self._rpc.call("decodepsbt", psbt)["tx"]["txid"]
        self._psbts[txid] = psbt
        self._owners[txid] = from_wallet
        return {"txid": txid, "psbt": psbt, "fee": funded.get("fee")}

    def _owner_of(self, txid: str) -> str:
        owner = self._owners.get(txid)
        if owner:
            return owner
        for wallet in self._rpc.call("listwallets"):
            try:
                self._rpc.call("gettransaction", txid, wallet=wallet)
            except BackendError:
                continue
            self._owners[txid] = wallet
            return wallet
        raise BackendError(f"No loaded wallet knows transaction {txid}", method="gettransaction")

    def replace_transaction(
        self,
        txid: str,
        *,
        new_fee_rate: float | None = None,
        new_outputs: Outputs | None = None,
    ) -> dict[str, Any]:
        """
        Fee-bump a broadcast, RBF-enabled transaction; returns {"txid", "original_txid", "fee"}.

        A wallet with private keys broadcasts the replacement itself (bumpfee). A watch-only
        wallet (a multisig watcher) gets an unsigned replacement PSBT (psbtbumpfee) that is
        kept pending under the new txid, like create_transaction, and also returned as "psbt".
        """
        wallet = self._owner_of(txid)
        options: dict[str, Any] = {}
        if new_fee_rate is not None:
            options["fee_rate"] = new_fee_rate
        if new_outputs:
            options["outputs"] = _outputs_list(new_outputs)
        watch_only = not self._rpc.call("getwalletinfo", wallet=wallet).get("private_keys_enabled", True)
        method = "psbtbumpfee" if watch_only else "bumpfee"
        bumped = self._rpc.call(method, txid, options, wallet=wallet)
        errors = bumped.get("errors") or []
        if errors:
            raise BackendError("; ".join(errors), method=method)
        if not watch_only:
            new_txid = bumped["txid"]
            self._owners[new_txid] = wallet
            return {"txid": new_txid, "original_txid": txid, "fee": bumped.get("fee")}
        psbt = bumped["psbt"]
        new_txid = self._rpc.call("decodepsbt", psbt)["tx"]["txid"]
        self._psbts[new_txid] = psbt
        self._owners[new_txid] = wallet
        _log.info("Replacement %s for watch-only %s awaits signatures", new_txid, wallet)
        return {"txid": new_txid, "original_txid": txid, "fee": bumped.get("fee"), "psbt": psbt}

    def sign_transaction(
        self,
        txid: str,
        *,
        wallet: str | None = None,
        private_key: str | None = None,
    ) -> dict[str, Any]:
        """Sign a pending PSBT with a wallet or a WIF key; returns {"txid", "psbt", "complete"}."""
        psbt = self._psbts.get(txid)
        if psbt is None:
            raise BackendError(f"No pending PSBT for transaction {txid}", method="sign_transaction")
        if wallet:
            signed = self._rpc.call("walletprocesspsbt", psbt, True, wallet=wallet)
        elif private_key:
            signed = self._rpc.call("descriptorprocesspsbt", psbt, [f"combo({private_key})"])
        else:
            raise ValueError("sign_transaction requires wallet or private_key")
        self._psbts[txid] = signed["psbt"]
        return {"txid": txid, "psbt": signed["psbt"], "complete": bool(signed.get("complete"))}

    def broadcast_transaction(self, *, txid: str | None = None, psbt: str | None = None) -> str:
        """Finalize and broadcast a signed PSBT (given directly or by txid); returns the txid."""
        if psbt is None:
            if txid is None:
                raise ValueError("broadcast_transaction requires txid or psbt")
            psbt = self._psbts.get(txid)
            if psbt is None:
                raise BackendError(f"No pending PSBT for transaction {txid}", method="broadcast_transaction")
        final = self._rpc.call("finalizepsbt", psbt)
        if not final.get("complete"):
            raise BackendError("PSBT is not fully signed", method="finalizepsbt")
        sent = self._rpc.call("sendrawtransaction", final["hex"])
        if txid is not None:
            self._psbts.pop(txid, None)
            owner = self._owners.get(txid)
            if owner:
                self._owners[sent] = owner
        return sent

    # -- multisig --------------------------------------------------------

    def _account_key(self, wallet: str) -> str:
        """[fingerprint/path]xpub of the wallet's external wpkh descriptor."""
        listed = self._rpc.call("listdescriptors", wallet=wallet)["descriptors"]
        external = [d for d in listed if not d.get("internal")]
        external.sort(key=lambda d: not d["desc"].startswith("wpkh("))
        for d in external:
            m = _KEY_ORIGIN_RE.search(d["desc"])
            if m:
                fingerprint, path, xpub = m.groups()
                return f"[{fingerprint}{path}]{xpub}"
        raise BackendError(f"Cannot extract an extended public key from wallet {wallet}", method="listdescriptors")

    def _checksummed(self, descriptor: str) -> str:
        info = self._rpc.call("getdescriptorinfo", descriptor)
        return f"{descriptor}#{info['checksum']}"

    def create_multisig(
        self,
        name: str,
        required_signers: int,
        total_signers: int,
        address_type: str,
    ) -> dict[str, Any]:
        """
        Create total_signers signer wallets and a watch-only wallet `name` tracking the
        required_signers-of-total_signers sortedmulti descriptor.
        """
        wrapper = _MULTISIG_WRAPPERS.get(address_type)
        if wrapper is None:
            raise ValueError(f"Unsupported multisig address type: {address_type}")
        if not 0 < required_signers <= total_signers:
            raise ValueError("requiredSigners must be between 1 and totalSigners")

        signers = []
        keys = []
        for i in range(1, total_signers + 1):
            signer = self.create_wallet(f"{name}_signer_{i}", {"descriptors": True})
            signers.append(signer)
            keys.append(self._account_key(signer))

        def _descriptor(branch: int) -> str:
            body = ",".join(f"{k}/{branch}/*" for k in keys)
            return self._checksummed(wrapper.format(f"sortedmulti({required_signers},{body})"))

        receive, change = _descriptor(0), _descriptor(1)
        self.create_wallet(name, {"disablePrivateKeys": True, "blank": True, "descriptors": True})
        imported = self._rpc.call(
            "importdescriptors",
            [
                {"desc": receive, "active": True, "internal": False, "timestamp": "now", "range": [0, 1000]},
                {"desc": change, "active": True, "internal": True, "timestamp": "now", "range": [0, 1000]},
            ],
            wallet=name,
        )
        failed = [r.get("error", {}).get("message", "unknown error") for r in imported if not r.get("success")]
        if failed:
            raise BackendError("; ".join(failed), method="importdescriptors")
        _log.info("Created %d-of-%d %s multisig wallet %s", required_signers, total_signers, address_type, name)
        return {
            "name": name,
            "descriptor": receive,
            "change_descriptor": change,
            "signers": signers,
            "required_signers": required_signers,
            "total_signers": total_signers,
            "address_type": address_type,
        }
