"""Transport protocols - what the trigger core needs from remote services."""

from __future__ import annotations

from typing import Any, Protocol


class ChainRpc(Protocol):
    """JSON-RPC access to the primary chain node."""

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one request and return its result. Raises TransportError."""
        ...

    async def block_number(self) -> int:
        ...

    async def get_logs(
        self,
        from_block: int | str,
        to_block: int | str,
        address: str | None = None,
        topics: list[str | None] | None = None,
    ) -> list[dict]:
        ...

    async def get_block(self, block: int | str, full_transactions: bool = False) -> dict | None:
        ...


class IndexerApi(Protocol):
    """Optional explorer/indexer REST API."""

    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """GET a JSON document. Raises TransportError."""
        ...
