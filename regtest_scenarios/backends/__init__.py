"""
Action backends: the ActionBackend protocol, the bitcoind RPC implementation and
the output-recording proxy used during a run.
"""

from .base import ActionBackend
from .bitcoin import RpcBackend
from .rpc import BitcoinRpcClient
from .tracking import TrackingBackend

__all__ = [
    "ActionBackend",
    "BitcoinRpcClient",
    "RpcBackend",
    "TrackingBackend",
]
