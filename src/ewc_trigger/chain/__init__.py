"""Energy Web Chain integration: constants, unit helpers and HTTP transport."""

from ewc_trigger.chain.transport import (
    ExplorerClient,
    JsonRpcClient,
    OriginClient,
    TransportError,
)

__all__ = ["ExplorerClient", "JsonRpcClient", "OriginClient", "TransportError"]
