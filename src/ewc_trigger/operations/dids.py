"""DID registry reads (did:ethr on Energy Web Chain)."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ewc_trigger.chain.constants import (
    CHANGED_SELECTOR,
    DID_ATTRIBUTE_CLAIM_TOPIC,
    ERROR_MESSAGES,
    IDENTITY_OWNER_SELECTOR,
    network_info,
)
from ewc_trigger.chain.transport import TransportError
from ewc_trigger.chain.units import (
    decode_did,
    encode_did,
    format_timestamp,
    hex_to_int,
    is_valid_address,
    is_valid_did,
    pad_hex,
)
from ewc_trigger.operations.clients import Clients

log = logging.getLogger(__name__)


async def _registry_call(clients: Clients, selector: str, address: str) -> str:
    data = selector + pad_hex(address, 32)[2:]
    return await clients.rpc.call(
        "eth_call",
        [{"to": clients.network.did_registry_address, "data": data}, "latest"],
    )


def _subject_address(address_or_did: str) -> str:
    if address_or_did.startswith("did:"):
        _, address = decode_did(address_or_did)
    else:
        address = address_or_did
    if not is_valid_address(address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])
    return address


async def get_did_document(clients: Clients, address_or_did: str) -> dict[str, Any]:
    """Resolve a minimal DID document from the registry's owner and change block.

    Accepts a bare address or a did:ethr string.
    """
    address = _subject_address(address_or_did)

    network = clients.network.network
    did = encode_did(address, network).did

    owner_word = await _registry_call(clients, IDENTITY_OWNER_SELECTOR, address) or "0x"
    changed_word = await _registry_call(clients, CHANGED_SELECTOR, address)
    owner = "0x" + owner_word[-40:].rjust(40, "0")

    controller = f"{did}#controller"
    document = {
        "@context": [
            "https://www.w3.org/ns/did/v1",
            "https://w3id.org/security/suites/secp256k1recovery-2020/v2",
        ],
        "id": did,
        "verificationMethod": [
            {
                "id": controller,
                "type": "EcdsaSecp256k1RecoveryMethod2020",
                "controller": did,
                "blockchainAccountId": f"eip155:{network_info(network).chain_id}:{address}",
            }
        ],
        "authentication": [controller],
        "assertionMethod": [controller],
    }
    return {
        "did": did,
        "address": address,
        "owner": owner,
        "changedBlock": hex_to_int(changed_word),
        "document": document,
    }


def _subject(clients: Clients, address_or_did: str) -> tuple[str, str]:
    """(address, did); a given DID is kept as written."""
    address = _subject_address(address_or_did)
    if address_or_did.startswith("did:"):
        return address, address_or_did
    return address, encode_did(address, clients.network.network).did


def _now_iso() -> str:
    return format_timestamp(int(datetime.now(timezone.utc).timestamp()))


async def get_did_claims(clients: Clients, address_or_did: str) -> dict[str, Any]:
    """Attribute claims recorded for an identity in the DID registry."""
    address, did = _subject(clients, address_or_did)
    raw = await clients.rpc.get_logs(
        0, "latest",
        address=clients.network.did_registry_address,
        topics=[DID_ATTRIBUTE_CLAIM_TOPIC, pad_hex(address, 32)],
    )
    issued_at = _now_iso()
    claims = [
        {
            "id": f"{did}#claim-{index + 1}",
            "subject": did,
            "issuer": did,
            "claimType": "attribute",
            "claimData": {
                "raw": entry.get("data"),
                "blockNumber": hex_to_int(entry.get("blockNumber")),
                "transactionHash": entry.get("transactionHash"),
            },
            "issuanceDate": issued_at,
        }
        for index, entry in enumerate(raw)
    ]
    return {
        "did": did,
        "address": address,
        "claims": claims,
        "totalClaims": len(claims),
    }


def _parse_date(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _not_expired(credential: dict[str, Any], now: datetime) -> bool:
    expires = credential.get("expirationDate")
    if not expires:
        return True
    try:
        return _parse_date(str(expires)) > now
    except ValueError:
        return False


async def verify_claim(
    clients: Clients,
    credential: str | dict[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Structural check of a W3C verifiable credential.

    The issuer counts as verified when it is a DID the registry has seen a
    change for. Proofs are not checked.
    """
    if isinstance(credential, str):
        try:
            credential = json.loads(credential)
        except json.JSONDecodeError as exc:
            raise ValueError(ERROR_MESSAGES["INVALID_CREDENTIAL"]) from exc
    if not isinstance(credential, dict):
        raise ValueError(ERROR_MESSAGES["INVALID_CREDENTIAL"])

    now = now or datetime.now(timezone.utc)
    context = credential.get("@context")
    types = credential.get("type")
    subject = credential.get("credentialSubject")
    results = {
        "hasContext": isinstance(context, list) and len(context) > 0,
        "hasId": bool(credential.get("id")),
        "hasType": isinstance(types, list) and "VerifiableCredential" in types,
        "hasIssuer": bool(credential.get("issuer")),
        "hasIssuanceDate": bool(credential.get("issuanceDate")),
        "hasCredentialSubject": isinstance(subject, dict) and bool(subject.get("id")),
        "isNotExpired": _not_expired(credential, now),
    }

    issuer = credential.get("issuer")
    issuer_verified = False
    if isinstance(issuer, str) and is_valid_did(issuer):
        _, issuer_address = decode_did(issuer)
        try:
            changed = await _registry_call(clients, CHANGED_SELECTOR, issuer_address)
        except TransportError as exc:
            log.warning("Issuer lookup failed for %s: %s", issuer, exc)
        else:
            issuer_verified = hex_to_int(changed) > 0

    return {
        "isValid": all(results.values()),
        "issuerVerified": issuer_verified,
        "validationResults": results,
        "credential": credential,
        "verifiedAt": format_timestamp(int(now.timestamp())),
        "note": "Full cryptographic verification requires proof validation",
    }
