"""Synthetic chain data factories for testing."""

from __future__ import annotations

from ewc_trigger.chain.constants import (
    CERTIFICATE_ISSUED_TOPIC,
    CERTIFICATE_TRANSFER_TOPIC,
    DID_ATTRIBUTE_CHANGED_TOPIC,
    DID_OWNER_CHANGED_TOPIC,
    DID_REGISTRY_ADDRESS,
)

ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
CAROL = "0x3333333333333333333333333333333333333333"
OPERATOR = "0x4444444444444444444444444444444444444444"
CERT_CONTRACT = "0x5555555555555555555555555555555555555555"


def address_topic(address: str) -> str:
    return "0x" + address[2:].lower().rjust(64, "0")


def int_topic(value: int) -> str:
    return "0x" + format(value, "x").rjust(64, "0")


def tx_hash(n: int) -> str:
    return "0x" + format(n, "x").rjust(64, "0")


def make_log(
    topics: list[str],
    block: int = 100,
    log_index: int = 0,
    tx: str | None = None,
    address: str = CERT_CONTRACT,
    data: str = "0x",
) -> dict:
    """An eth_getLogs entry (hex quantities)."""
    return {
        "address": address,
        "topics": topics,
        "data": data,
        "blockNumber": hex(block),
        "transactionHash": tx or tx_hash(block * 1000 + log_index),
        "transactionIndex": "0x0",
        "blockHash": "0x" + "ab" * 32,
        "logIndex": hex(log_index),
        "removed": False,
    }


def make_issued_log(certificate_id: int = 7, to: str = ALICE, **kwargs) -> dict:
    return make_log([CERTIFICATE_ISSUED_TOPIC, int_topic(certificate_id), address_topic(to)], **kwargs)


def make_transfer_log(sender: str = ALICE, to: str = BOB, **kwargs) -> dict:
    topics = [CERTIFICATE_TRANSFER_TOPIC, address_topic(OPERATOR), address_topic(sender), address_topic(to)]
    return make_log(topics, **kwargs)


def make_owner_changed_log(identity: str = ALICE, owner: str | None = None, **kwargs) -> dict:
    owner = owner or identity
    # owner word followed by previousChange word
    data = "0x" + owner[2:].lower().rjust(64, "0") + "0" * 64
    kwargs.setdefault("address", DID_REGISTRY_ADDRESS)
    return make_log([DID_OWNER_CHANGED_TOPIC, address_topic(identity)], data=data, **kwargs)


def make_attribute_changed_log(identity: str = ALICE, **kwargs) -> dict:
    kwargs.setdefault("address", DID_REGISTRY_ADDRESS)
    return make_log([DID_ATTRIBUTE_CHANGED_TOPIC, address_topic(identity)], **kwargs)


def make_asset_item(owner: str = ALICE, block: int = 100, log_index: int = 0, tx: str | None = None) -> dict:
    """An EW Scan /v1/logs item (snake_case, integer fields)."""
    return {
        "address": CERT_CONTRACT,
        "topics": ["0x" + "ee" * 32, address_topic(owner)],
        "data": "0x",
        "block_number": block,
        "transaction_hash": tx or tx_hash(block * 1000 + log_index),
        "log_index": log_index,
    }


def make_tx(
    n: int,
    value_wei: int,
    sender: str = ALICE,
    to: str | None = BOB,
    index: int = 0,
) -> dict:
    return {
        "hash": tx_hash(n),
        "from": sender,
        "to": to,
        "value": hex(value_wei),
        "transactionIndex": hex(index),
    }


def make_block(number: int, txs: list[dict] | None = None, timestamp: int = 1_700_000_000) -> dict:
    """An eth_getBlockByNumber(n, true) result."""
    return {
        "number": hex(number),
        "hash": "0x" + format(number, "x").rjust(64, "0"),
        "parentHash": "0x" + "00" * 32,
        "timestamp": hex(timestamp),
        "miner": OPERATOR,
        "gasUsed": hex(21000),
        "gasLimit": hex(8_000_000),
        "size": hex(600),
        "transactions": txs or [],
    }
