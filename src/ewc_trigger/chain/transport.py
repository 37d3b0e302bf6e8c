"""HTTP transport for the chain node (JSON-RPC), EW Scan explorer and Origin API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ewc_trigger.chain.constants import ERROR_MESSAGES
from ewc_trigger.chain.units import hex_to_int, to_block_tag

log = logging.getLogger(__name__)


class TransportError(Exception):
    """A remote call failed: network error, HTTP status, bad envelope or RPC error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} (code {self.code})"
        return self.message


class _HttpClient:
    """Shared httpx.AsyncClient lifecycle for the three remote services."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10),
                headers=self._headers,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        fallback_message: str,
    ) -> Any:
        try:
            resp = await self._http().request(method, url, json=json_body, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"HTTP {exc.response.status_code} from {url}",
                code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or fallback_message) from exc
        except ValueError as exc:
            # Body was not JSON
            raise TransportError(f"Malformed response from {url}: {exc}") from exc


class JsonRpcClient(_HttpClient):
    """JSON-RPC 2.0 client for an Energy Web Chain node.

    Request ids come from a per-instance counter, so two clients never
    share framing state.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(rpc_url, timeout=timeout, transport=transport)
        self._next_id = 1

    def _take_id(self) -> int:
        request_id = self._next_id
        self._next_id += 1
        return request_id

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one request and return its ``result`` member."""
        body = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._take_id(),
        }
        log.debug("RPC %s %s", method, body["params"])
        response = await self._send(
            "POST", self._base_url, json_body=body,
            fallback_message=ERROR_MESSAGES["RPC_ERROR"],
        )
        return _unwrap(response)

    async def batch(self, requests: list[tuple[str, list[Any]]]) -> list[Any]:
        """Send a JSON-RPC batch; results are returned in request order."""
        if not requests:
            return []
        body = [
            {"jsonrpc": "2.0", "method": method, "params": params, "id": self._take_id()}
            for method, params in requests
        ]
        response = await self._send(
            "POST", self._base_url, json_body=body,
            fallback_message=ERROR_MESSAGES["RPC_ERROR"],
        )
        if not isinstance(response, list):
            raise TransportError("Malformed JSON-RPC batch response")

        by_id = {item.get("id"): item for item in response if isinstance(item, dict)}
        results = []
        for index, request in enumerate(body):
            item = by_id.get(request["id"])
            if item is None:
                raise TransportError(f"Batch request {index} missing from response")
            try:
                results.append(_unwrap(item))
            except TransportError as exc:
                raise TransportError(
                    f"Batch request {index} failed: {exc.message}", code=exc.code,
                ) from exc
        return results

    # ── Convenience wrappers used by the trigger core ──

    async def block_number(self) -> int:
        return hex_to_int(await self.call("eth_blockNumber"))

    async def get_logs(
        self,
        from_block: int | str,
        to_block: int | str,
        address: str | None = None,
        topics: list[str | None] | None = None,
    ) -> list[dict]:
        log_filter: dict[str, Any] = {
            "fromBlock": to_block_tag(from_block),
            "toBlock": to_block_tag(to_block),
        }
        if address:
            log_filter["address"] = address
        if topics:
            log_filter["topics"] = topics
        return await self.call("eth_getLogs", [log_filter]) or []

    async def get_block(self, block: int | str, full_transactions: bool = False) -> dict | None:
        return await self.call(
            "eth_getBlockByNumber", [to_block_tag(block), full_transactions],
        )


def _unwrap(response: Any) -> Any:
    if not isinstance(response, dict) or "jsonrpc" not in response:
        raise TransportError("Malformed JSON-RPC response")
    error = response.get("error")
    if error:
        if isinstance(error, dict):
            raise TransportError(
                error.get("message") or ERROR_MESSAGES["RPC_ERROR"], code=error.get("code"),
            )
        raise TransportError(str(error))
    return response.get("result")


class ExplorerClient(_HttpClient):
    """EW Scan (block explorer / indexer) REST client."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"X-API-Key": api_key} if api_key else None
        super().__init__(base_url, timeout=timeout, headers=headers, transport=transport)

    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        log.debug("Explorer GET %s %s", path, query)
        return await self._send(
            "GET", f"{self._base_url}{path}", params=query,
            fallback_message="EW Scan API request failed",
        )


class OriginClient(_HttpClient):
    """Origin certificate registry REST client."""

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Any:
        log.debug("Origin %s %s", method, path)
        return await self._send(
            method, f"{self._base_url}{path}", json_body=body, params=query,
            fallback_message="Origin API request failed",
        )
