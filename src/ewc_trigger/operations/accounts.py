"""Account operations: native balance, token balances and history."""

from __future__ import annotations

import logging
from typing import Any

from ewc_trigger.chain.constants import ERROR_MESSAGES
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import format_units, hex_to_int, is_valid_address, wei_to_units
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)


def _require_address(address: str) -> None:
    if not is_valid_address(address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])


async def get_balance(clients: Clients, address: str) -> dict[str, Any]:
    _require_address(address)
    wei = hex_to_int(await clients.rpc.call("eth_getBalance", [address, "latest"]))
    return {
        "address": address,
        "balance": str(wei),
        "balanceEwt": wei_to_units(wei).ewt,
        "network": clients.network.name,
    }


async def get_token_balances(clients: Clients, address: str) -> dict[str, Any]:
    """ERC-20 balances from the explorer; empty when the explorer is unreachable."""
    _require_address(address)
    try:
        response = await clients.explorer.get(f"/v1/addresses/{address}/token-balances")
    except TransportError as exc:
        log.warning("Token balances unavailable for %s: %s", address, exc)
        return {"address": address, "tokenBalances": []}

    balances = []
    for item in response or []:
        token = item.get("token") or {}
        decimals = int(token.get("decimals") or 18)
        raw = int(item.get("value") or 0)
        balances.append({
            "contractAddress": token.get("address"),
            "tokenName": token.get("name"),
            "tokenSymbol": token.get("symbol"),
            "tokenDecimals": decimals,
            "balance": str(raw),
            "balanceFormatted": format_units(raw, decimals),
        })
    return {"address": address, "tokenBalances": balances}


async def get_transaction_history(
    clients: Clients, address: str, limit: int = 10, offset: int = 0,
) -> dict[str, Any]:
    _require_address(address)
    try:
        response = await clients.explorer.get(
            f"/v1/addresses/{address}/transactions", {"limit": limit, "offset": offset},
        )
    except TransportError as exc:
        log.warning("Transaction history unavailable for %s: %s", address, exc)
        return {
            "address": address,
            "transactions": [],
            "latestBlock": await clients.rpc.block_number(),
            "message": "Transaction history requires EW Scan API access",
        }

    response = response or {}
    transactions = []
    for tx in response.get("items") or []:
        value = tx.get("value") or "0"
        transactions.append({
            "hash": tx.get("hash"),
            "blockNumber": tx.get("blockNumber"),
            "timestamp": tx.get("timestamp"),
            "from": (tx.get("from") or {}).get("hash"),
            "to": (tx.get("to") or {}).get("hash"),
            "value": value,
            "valueEwt": wei_to_units(value).ewt,
            "gasUsed": tx.get("gasUsed"),
            "status": tx.get("status"),
        })
    return {
        "address": address,
        "transactions": transactions,
        "pagination": {
            "limit": limit,
            "offset": offset,
            "hasMore": response.get("next_page_params") is not None,
        },
    }
