"""
bitcoind JSON-RPC client over httpx.

One httpx.Client per BitcoinRpcClient; wallet-scoped calls go to /wallet/<name>.
Node errors ({"error": {...}}) and transport failures raise BackendError.
"""

import itertools
import logging
from typing import Any
from urllib.parse import quote

import httpx

from regtest_scenarios.core.config import settings
from regtest_scenarios.core.errors import BackendError

_log = logging.getLogger(__name__)


class BitcoinRpcClient:
    """Thin JSON-RPC 1.0 client: call(method, *params, wallet=None)."""

    __slots__ = ("_url", "_auth", "_timeout", "_client", "_ids", "_transport")

    def __init__(
        self,
        url: str | None = None,
        user: str | None = None,
        password: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = str(url or settings.BITCOIN_RPC_URL).rstrip("/")
        self._auth = (
            user if user is not None else settings.BITCOIN_RPC_USER,
            password if password is not None else settings.BITCOIN_RPC_PASSWORD,
        )
        self._timeout = timeout if timeout is not None else settings.BITCOIN_RPC_TIMEOUT
        self._transport = transport
        self._client: httpx.Client | None = None
        self._ids = itertools.count(1)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                auth=self._auth, timeout=self._timeout, transport=self._transport
            )
        return self._client

    def _endpoint(self, wallet: str | None) -> str:
        if wallet is None:
            return self._url
        return f"{self._url}/wallet/{quote(wallet, safe='')}"

    def call(self, method: str, *params: Any, wallet: str | None = None, **named: Any) -> Any:
        """Invoke an RPC method and return its `result`. Use positional or named params, not both."""
        if params and named:
            raise ValueError("Pass RPC params positionally or by name, not both")
        payload = {
            "jsonrpc": "1.0",
            "id": next(self._ids),
            "method": method,
            "params": dict(named) if named else list(params),
        }
        _log.debug("rpc %s wallet=%s params=%s", method, wallet, payload["params"])
        try:
            resp = self._get_client().post(self._endpoint(wallet), json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"RPC transport error: {e}", method=method) from e

        # bitcoind answers RPC errors with HTTP 500 and a JSON error body
        try:
            body = resp.json()
        except ValueError:
            if resp.status_code == 401:
                raise BackendError("RPC authentication failed", code=401, method=method)
            raise BackendError(
                f"Unexpected RPC response (HTTP {resp.status_code}): {resp.text[:200]}",
                code=resp.status_code,
                method=method,
            )
        err = body.get("error") if isinstance(body, dict) else None
        if err:
            raise BackendError(
                str(err.get("message", err)),
                code=err.get("code"),
                method=method,
                data=err,
            )
        if not isinstance(body, dict) or "result" not in body:
            raise BackendError("RPC response has no result", method=method, data=body)
        return body["result"]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "BitcoinRpcClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
