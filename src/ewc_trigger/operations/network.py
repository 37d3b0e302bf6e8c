"""Network operations: status, gas price, validators and blocks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ewc_trigger.chain.constants import ERROR_MESSAGES, MAINNET, NETWORKS, VOLTA, WEI_PER_GWEI
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import format_timestamp, hex_to_int, to_block_tag
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)

_VALIDATOR_SCAN_BLOCKS = 10


def _network_for_chain(chain_id: int) -> str:
    for info in NETWORKS.values():
        if info.chain_id == chain_id:
            return info.name
    return "Unknown"


async def get_network_status(clients: Clients) -> dict[str, Any]:
    rpc = clients.rpc
    chain_id = hex_to_int(await rpc.call("eth_chainId"))
    latest_block = await rpc.block_number()
    gas_price = hex_to_int(await rpc.call("eth_gasPrice"))

    # net_peerCount is disabled on public endpoints
    try:
        peer_count = hex_to_int(await rpc.call("net_peerCount"))
    except TransportError as exc:
        log.debug("net_peerCount unavailable: %s", exc)
        peer_count = 0

    info = VOLTA if chain_id == VOLTA.chain_id else MAINNET
    return {
        "chainId": chain_id,
        "networkName": _network_for_chain(chain_id),
        "latestBlock": latest_block,
        "gasPrice": str(gas_price),
        "gasPriceGwei": str(gas_price // WEI_PER_GWEI),
        "isConnected": True,
        "peerCount": peer_count,
        "symbol": info.symbol,
        "explorerUrl": info.explorer_url,
    }


async def get_gas_price(clients: Clients) -> dict[str, Any]:
    gas_price = hex_to_int(await clients.rpc.call("eth_gasPrice"))
    gwei = gas_price // WEI_PER_GWEI
    block = await clients.rpc.get_block("latest") or {}

    gas_used = hex_to_int(block.get("gasUsed"))
    gas_limit = hex_to_int(block.get("gasLimit"))
    utilization = round(gas_used / gas_limit * 100, 2) if gas_limit else 0.0

    result: dict[str, Any] = {
        "gasPrice": str(gas_price),
        "gasPriceGwei": str(gwei),
        "suggestions": {
            "slow": str(gwei * 80 // 100),
            "standard": str(gwei),
            "fast": str(gwei * 120 // 100),
        },
        "blockGasInfo": {
            "gasUsed": gas_used,
            "gasLimit": gas_limit,
            "utilizationPercent": utilization,
        },
    }
    if block.get("baseFeePerGas"):
        result["baseFeePerGas"] = str(hex_to_int(block["baseFeePerGas"]))
    return result


async def get_validators(clients: Clients) -> dict[str, Any]:
    """Validator set from the explorer, or the miners of recent blocks."""
    try:
        response = await clients.explorer.get("/v1/validators")
    except TransportError as exc:
        log.warning("Validator list unavailable from explorer, scanning recent blocks: %s", exc)
        return await _validators_from_blocks(clients)

    validators = [
        {
            "address": (item.get("address") or {}).get("hash"),
            "isActive": bool(item.get("is_active")),
            "blocksMined": item.get("blocks_validated_count"),
        }
        for item in (response or {}).get("items") or []
    ]
    active = sum(1 for v in validators if v["isActive"])
    return {
        "validators": validators,
        "totalValidators": len(validators),
        "activeValidators": active,
        "inactiveValidators": len(validators) - active,
    }


async def _validators_from_blocks(clients: Clients) -> dict[str, Any]:
    latest = await clients.rpc.block_number()
    numbers = [latest - i for i in range(_VALIDATOR_SCAN_BLOCKS) if latest - i > 0]
    blocks = await asyncio.gather(*(clients.rpc.get_block(n) for n in numbers))

    miners: list[str] = []
    for block in blocks:
        miner = (block or {}).get("miner")
        if miner and miner.lower() not in miners:
            miners.append(miner.lower())

    return {
        "validators": [{"address": m, "isActive": True} for m in miners],
        "totalValidators": len(miners),
        "message": "Validator list from recent blocks. Full list requires EW Scan API.",
        "blocksScanned": min(_VALIDATOR_SCAN_BLOCKS, latest),
    }


async def get_block(
    clients: Clients, block_id: str, include_transactions: bool = False,
) -> dict[str, Any]:
    """Look up a block by tag, decimal number, hex number or 32-byte hash."""
    block_id = str(block_id).strip()
    if block_id.startswith("0x") and len(block_id) == 66:
        block = await clients.rpc.call("eth_getBlockByHash", [block_id, include_transactions])
    else:
        try:
            tag = to_block_tag(block_id)
        except ValueError:
            raise ValueError(f"Invalid block identifier: {block_id}") from None
        block = await clients.rpc.get_block(tag, include_transactions)

    if not block:
        raise LookupError(ERROR_MESSAGES["BLOCK_NOT_FOUND"])
    return format_block(block)


def format_block(block: dict[str, Any]) -> dict[str, Any]:
    number = hex_to_int(block.get("number"))
    timestamp = hex_to_int(block.get("timestamp"))
    gas_used = hex_to_int(block.get("gasUsed"))
    gas_limit = hex_to_int(block.get("gasLimit"))
    transactions = block.get("transactions") or []
    utilization = f"{gas_used / gas_limit * 100:.2f}%" if gas_limit else "0.00%"
    return {
        "number": number,
        "hash": block.get("hash"),
        "parentHash": block.get("parentHash"),
        "timestamp": timestamp,
        "timestampFormatted": format_timestamp(timestamp),
        "miner": block.get("miner"),
        "gasUsed": gas_used,
        "gasLimit": gas_limit,
        "gasUtilization": utilization,
        "size": hex_to_int(block.get("size")),
        "transactionCount": len(transactions),
        "transactions": transactions,
        "difficulty": block.get("difficulty"),
        "totalDifficulty": block.get("totalDifficulty"),
        "extraData": block.get("extraData"),
        "nonce": block.get("nonce"),
        "uncles": block.get("uncles"),
    }
