"""Origin certificate registry reads.

The registry is optional: lookups that fail come back as message records
instead of raising.
"""

from __future__ import annotations

import logging
from typing import Any

from ewc_trigger.chain.constants import ERROR_MESSAGES
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import format_timestamp, is_valid_address
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)

WH_PER_MWH = 1_000_000


def _format_certificate(cert: dict[str, Any]) -> dict[str, Any]:
    return {
        **cert,
        "energyMwh": int(cert.get("energy") or 0) / WH_PER_MWH,
        "generationStartFormatted": format_timestamp(int(cert.get("generationStartTime") or 0)),
        "generationEndFormatted": format_timestamp(int(cert.get("generationEndTime") or 0)),
    }


async def get_certificate(clients: Clients, certificate_id: str) -> dict[str, Any]:
    try:
        cert = await clients.origin.request("GET", f"/certificates/{certificate_id}")
    except TransportError as exc:
        log.warning("Certificate %s lookup failed: %s", certificate_id, exc)
        return {
            "certificateId": certificate_id,
            "message": "Certificate lookup requires Origin API or direct contract access",
            "error": ERROR_MESSAGES["CERTIFICATE_NOT_FOUND"],
        }
    return _format_certificate(cert or {})


async def get_certificate_history(clients: Clients, certificate_id: str) -> dict[str, Any]:
    try:
        history = await clients.origin.request(
            "GET", f"/certificates/{certificate_id}/history",
        )
    except TransportError as exc:
        log.warning("Certificate %s history failed: %s", certificate_id, exc)
        return {
            "certificateId": certificate_id,
            "events": [],
            "message": "Full history requires Origin API or event log parsing",
        }

    history = history or {}
    events = [
        {**event, "timestampFormatted": format_timestamp(int(event.get("timestamp") or 0))}
        for event in history.get("events") or []
    ]
    return {
        "certificateId": history.get("certificateId", certificate_id),
        "events": events,
        "totalEvents": len(events),
    }


async def get_user_certificates(
    clients: Clients, address: str, include_retired: bool = False,
) -> dict[str, Any]:
    if not is_valid_address(address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])

    query = {"owner": address}
    if not include_retired:
        query["retired"] = "false"
    try:
        certs = await clients.origin.request("GET", "/certificates", query=query)
    except TransportError as exc:
        log.warning("Certificates for %s unavailable: %s", address, exc)
        return {
            "address": address,
            "certificates": [],
            "message": "Certificate lookup requires Origin API access",
        }

    certs = certs or []
    total_wh = sum(int(c.get("energy") or 0) for c in certs)
    retired = sum(1 for c in certs if c.get("isRetired"))
    return {
        "address": address,
        "certificates": [_format_certificate(c) for c in certs],
        "summary": {
            "totalCertificates": len(certs),
            "activeCertificates": len(certs) - retired,
            "retiredCertificates": retired,
            "totalEnergyWh": total_wh,
            "totalEnergyMwh": total_wh / WH_PER_MWH,
        },
    }
