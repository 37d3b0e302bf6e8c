"""Origin device (asset) registry reads.

Same contract as the certificate reads: registry failures come back as
message records.
"""

from __future__ import annotations

import logging
from typing import Any

from ewc_trigger.chain.constants import ERROR_MESSAGES
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import format_timestamp
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)


def _capacity_kw(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


async def get_asset_info(clients: Clients, asset_id: str) -> dict[str, Any]:
    try:
        asset = await clients.origin.request("GET", f"/devices/{asset_id}")
    except TransportError as exc:
        log.warning("Asset %s lookup failed: %s", asset_id, exc)
        return {
            "assetId": asset_id,
            "error": ERROR_MESSAGES["ASSET_NOT_FOUND"],
            "message": "Asset lookup requires Origin API access",
        }
    asset = asset or {}
    return {
        **asset,
        "capacityKw": _capacity_kw(asset.get("capacity")),
        "commissioningDateFormatted": asset.get("commissioningDate"),
    }


async def get_asset_history(clients: Clients, asset_id: str) -> dict[str, Any]:
    try:
        history = await clients.origin.request("GET", f"/devices/{asset_id}/history")
    except TransportError as exc:
        log.warning("Asset %s history failed: %s", asset_id, exc)
        return {
            "assetId": asset_id,
            "events": [],
            "message": "Asset history requires Origin API access",
        }

    history = history or {}
    events = [
        {**event, "timestampFormatted": format_timestamp(int(event.get("timestamp") or 0))}
        for event in history.get("events") or []
    ]
    return {
        "assetId": history.get("assetId", asset_id),
        "events": events,
        "totalEvents": len(events),
    }
