"""Transaction lookups and gas estimation."""

from __future__ import annotations

from typing import Any

from ewc_trigger.chain.constants import ERROR_MESSAGES, WEI_PER_GWEI
from ewc_trigger.chain.units import (
    ewt_to_wei,
    hex_to_int,
    int_to_hex,
    is_valid_address,
    is_valid_tx_hash,
    wei_to_units,
)
from ewc_trigger.operations.clients import Clients


def _require_tx_hash(tx_hash: str) -> None:
    if not is_valid_tx_hash(tx_hash):
        raise ValueError(ERROR_MESSAGES["INVALID_TX_HASH"])


async def get_transaction(clients: Clients, tx_hash: str) -> dict[str, Any]:
    _require_tx_hash(tx_hash)
    tx = await clients.rpc.call("eth_getTransactionByHash", [tx_hash])
    if not tx:
        raise LookupError(ERROR_MESSAGES["TRANSACTION_NOT_FOUND"])
    receipt = await clients.rpc.call("eth_getTransactionReceipt", [tx_hash]) or {}

    return {
        "hash": tx.get("hash"),
        "nonce": tx.get("nonce"),
        "blockHash": tx.get("blockHash"),
        "blockNumber": tx.get("blockNumber"),
        "transactionIndex": tx.get("transactionIndex"),
        "from": tx.get("from"),
        "to": tx.get("to"),
        "value": tx.get("value"),
        "valueEwt": wei_to_units(hex_to_int(tx.get("value"))).ewt,
        "gasPrice": tx.get("gasPrice"),
        "gas": tx.get("gas"),
        "input": tx.get("input"),
        "status": receipt.get("status"),
        "gasUsed": receipt.get("gasUsed"),
        "contractAddress": receipt.get("contractAddress"),
        "logs": receipt.get("logs") or [],
    }


async def get_transaction_status(clients: Clients, tx_hash: str) -> dict[str, Any]:
    """pending / confirmed / failed with confirmation count."""
    _require_tx_hash(tx_hash)
    pending = {"hash": tx_hash, "status": "pending", "confirmations": 0, "blockNumber": None}

    tx = await clients.rpc.call("eth_getTransactionByHash", [tx_hash])
    if not tx or not tx.get("blockNumber"):
        return pending
    receipt = await clients.rpc.call("eth_getTransactionReceipt", [tx_hash])
    if not receipt:
        return pending

    block_number = hex_to_int(tx["blockNumber"])
    current = await clients.rpc.block_number()
    return {
        "hash": tx_hash,
        "status": "confirmed" if hex_to_int(receipt.get("status")) == 1 else "failed",
        "confirmations": current - block_number + 1,
        "blockNumber": block_number,
        "gasUsed": hex_to_int(receipt.get("gasUsed")),
    }


async def estimate_gas(
    clients: Clients,
    to: str,
    value: str = "0",
    data: str = "",
    from_address: str = "",
) -> dict[str, Any]:
    if to and not is_valid_address(to):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])

    params: dict[str, Any] = {"to": to, "data": data or "0x"}
    if from_address and is_valid_address(from_address):
        params["from"] = from_address
    if value and str(value) != "0":
        params["value"] = int_to_hex(ewt_to_wei(value))

    estimate_hex = await clients.rpc.call("eth_estimateGas", [params])
    estimate = hex_to_int(estimate_hex)
    gas_price = hex_to_int(await clients.rpc.call("eth_gasPrice"))
    cost = gas_price * estimate

    return {
        "gasEstimate": estimate,
        "gasEstimateHex": estimate_hex,
        "gasPrice": str(gas_price),
        "gasPriceGwei": str(gas_price // WEI_PER_GWEI),
        "estimatedCost": str(cost),
        "estimatedCostEwt": wei_to_units(cost).ewt,
    }
