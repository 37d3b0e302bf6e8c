"""ERC-20 token reads: metadata via eth_call, holders via the explorer."""

from __future__ import annotations

import logging
from typing import Any

from ewc_trigger.chain.constants import ERC20_SELECTORS, ERROR_MESSAGES
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import format_units, hex_to_int, is_valid_address
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)

_METADATA = ("name", "symbol", "decimals", "totalSupply")


def _decode_string(word: str | None) -> str:
    """Decode an ABI-encoded ``string`` return (offset, length, bytes)."""
    if not word or word == "0x" or len(word) < 130:
        return ""
    data = word[2:]
    try:
        length = int(data[64:128], 16) * 2
        return bytes.fromhex(data[128:128 + length]).decode("utf-8", errors="replace")
    except ValueError:
        return ""


def _percentage(part: int, total: int) -> float:
    """Share of ``total`` in percent, truncated to two decimals."""
    if total == 0:
        return 0.0
    return (part * 10000 // total) / 100


def _require_token(address: str) -> None:
    if not is_valid_address(address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])


async def get_token_info(clients: Clients, token_address: str) -> dict[str, Any]:
    """Name, symbol, decimals and supply in one JSON-RPC batch.

    ``owner`` is read separately and left out when the token has no
    ``owner()`` function.
    """
    _require_token(token_address)
    results = await clients.rpc.batch([
        ("eth_call", [{"to": token_address, "data": ERC20_SELECTORS[name]}, "latest"])
        for name in _METADATA
    ])
    raw = dict(zip(_METADATA, results))

    decimals = hex_to_int(raw["decimals"]) if raw["decimals"] not in (None, "", "0x") else 18
    total_supply = hex_to_int(raw["totalSupply"])

    info: dict[str, Any] = {
        "address": token_address,
        "name": _decode_string(raw["name"]),
        "symbol": _decode_string(raw["symbol"]),
        "decimals": decimals,
        "totalSupply": str(total_supply),
        "totalSupplyFormatted": format_units(total_supply, decimals),
    }

    try:
        owner_word = await clients.rpc.call(
            "eth_call", [{"to": token_address, "data": ERC20_SELECTORS["owner"]}, "latest"],
        )
    except TransportError as exc:
        log.debug("Token %s has no owner(): %s", token_address, exc)
        owner_word = None
    if owner_word and len(owner_word) >= 66:
        info["owner"] = "0x" + owner_word[-40:]
    return info


async def get_token_holders(
    clients: Clients, token_address: str, limit: int = 10,
) -> dict[str, Any]:
    _require_token(token_address)
    try:
        response = await clients.explorer.get(
            f"/v1/tokens/{token_address}/holders", {"limit": limit},
        )
    except TransportError as exc:
        log.warning("Token holders unavailable for %s: %s", token_address, exc)
        return {
            "tokenAddress": token_address,
            "holders": [],
            "message": "Token holder list requires EW Scan API access",
            "note": "Use Transfer events to track holders manually",
        }

    response = response or {}
    token = response.get("token") or {}
    total_supply = int(token.get("total_supply") or 0)
    decimals = int(token.get("decimals") or 18)

    holders = []
    for item in response.get("items") or []:
        balance = int(item.get("value") or 0)
        holders.append({
            "address": (item.get("address") or {}).get("hash"),
            "balance": str(balance),
            "balanceFormatted": format_units(balance, decimals),
            "percentage": _percentage(balance, total_supply),
        })
    return {
        "tokenAddress": token_address,
        "holders": holders,
        "totalHolders": len(holders),
        "totalSupply": str(total_supply),
    }
