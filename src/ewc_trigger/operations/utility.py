"""Offline helpers exposed as operations, plus an endpoint health check."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from ewc_trigger.chain.constants import network_info
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import encode_did as _encode_did
from ewc_trigger.chain.units import units_to_wei, wei_to_units
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)

UNITS = ("wei", "gwei", "ewt")


def convert_units(amount: str, from_unit: str, to_unit: str) -> dict[str, Any]:
    for unit in (from_unit, to_unit):
        if unit not in UNITS:
            raise ValueError(f"Unknown unit: {unit}")
    try:
        wei = units_to_wei(str(amount).strip(), from_unit)
    except ValueError:
        raise ValueError("Invalid amount provided") from None

    converted = wei_to_units(wei)
    return {
        "input": {"amount": amount, "unit": from_unit},
        "output": {"amount": getattr(converted, to_unit), "unit": to_unit},
        "allUnits": {"wei": converted.wei, "gwei": converted.gwei, "ewt": converted.ewt},
    }


def encode_did(address: str, network: str = "mainnet") -> dict[str, Any]:
    encoded = _encode_did(address, network)
    info = network_info(network)
    return {
        "did": encoded.did,
        "method": encoded.method,
        "identifier": encoded.identifier,
        "network": info.name,
        "chainId": info.chain_id,
    }


async def get_api_health(clients: Clients) -> dict[str, Any]:
    """healthy / degraded (unexpected chain id) / down (RPC unreachable)."""
    started = time.monotonic()
    settings = clients.network
    chain_id = block_number = None
    try:
        chain_id = int(await clients.rpc.call("eth_chainId"), 16)
        block_number = await clients.rpc.block_number()
    except (TransportError, TypeError, ValueError) as exc:
        log.warning("RPC health check failed: %s", exc)
        status, connected = "down", False
    else:
        connected = True
        expected = settings.info.chain_id if settings.network != "custom" else None
        status = "degraded" if expected and chain_id != expected else "healthy"

    return {
        "status": status,
        "rpcConnected": connected,
        "latency": int((time.monotonic() - started) * 1000),
        "chainId": chain_id,
        "blockNumber": block_number,
        "network": {
            "name": settings.name,
            "expectedChainId": settings.info.chain_id,
            "rpcUrl": settings.rpc_endpoint(),
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
