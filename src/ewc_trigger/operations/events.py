"""Raw log queries."""

from __future__ import annotations

from typing import Any, Sequence

from ewc_trigger.chain.constants import ERROR_MESSAGES
from ewc_trigger.chain.units import hex_to_int, is_valid_address
from ewc_trigger.operations.clients import Clients


def format_log(entry: dict[str, Any]) -> dict[str, Any]:
    return {
        "address": entry.get("address"),
        "topics": entry.get("topics") or [],
        "data": entry.get("data"),
        "blockNumber": hex_to_int(entry.get("blockNumber")),
        "transactionHash": entry.get("transactionHash"),
        "transactionIndex": hex_to_int(entry.get("transactionIndex")),
        "blockHash": entry.get("blockHash"),
        "logIndex": hex_to_int(entry.get("logIndex")),
        "removed": bool(entry.get("removed")),
    }


def _topic(value: str) -> str:
    """Normalize an indexed topic; bare hex is left-padded to 32 bytes."""
    if value.startswith("0x"):
        return value
    return "0x" + value.rjust(64, "0")


async def get_logs(
    clients: Clients,
    contract_address: str = "",
    from_block: int | str = "latest",
    to_block: int | str = "latest",
    topics: Sequence[str] = (),
) -> dict[str, Any]:
    """eth_getLogs passthrough; "" or "null" topics are wildcards."""
    if contract_address and not is_valid_address(contract_address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])

    topic_filter = [None if t in ("", "null") else t for t in topics]
    raw = await clients.rpc.get_logs(
        from_block, to_block,
        address=contract_address or None,
        topics=topic_filter or None,
    )
    logs = [format_log(entry) for entry in raw]
    return {
        "logs": logs,
        "count": len(logs),
        "filter": {
            "address": contract_address or "all",
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": list(topics) if topics else "none",
        },
    }


async def filter_events(
    clients: Clients,
    contract_address: str,
    event_signature: str = "",
    topic1: str = "",
    topic2: str = "",
    topic3: str = "",
    from_block: int | str = "latest",
    to_block: int | str = "latest",
) -> dict[str, Any]:
    """Logs of one contract filtered by signature hash and indexed arguments."""
    if not is_valid_address(contract_address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])

    topics: list[str | None] = [
        (event_signature if event_signature.startswith("0x") else f"0x{event_signature}")
        if event_signature else None
    ]
    indexed = [topic1, topic2, topic3]
    # Trailing empty positions are dropped, inner ones become wildcards
    while indexed and not indexed[-1]:
        indexed.pop()
    topics.extend(_topic(t) if t else None for t in indexed)

    raw = await clients.rpc.get_logs(
        from_block, to_block, address=contract_address, topics=topics,
    )
    logs = []
    for entry in raw:
        item = format_log(entry)
        if event_signature:
            item["eventName"] = "Filtered Event"
        logs.append(item)

    return {
        "logs": logs,
        "count": len(logs),
        "filter": {
            "address": contract_address,
            "fromBlock": from_block,
            "toBlock": to_block,
            "eventSignature": event_signature or "any",
            "topics": [t for t in topics if t is not None],
        },
    }


async def get_contract_events(
    clients: Clients,
    contract_address: str,
    event_signature: str = "",
    from_block: int | str = "earliest",
    to_block: int | str = "latest",
    topics: Sequence[str] = (),
) -> dict[str, Any]:
    """All events of one contract, optionally narrowed to a signature hash."""
    if not is_valid_address(contract_address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])

    topic_filter: list[str | None] = []
    if event_signature:
        topic_filter.append(
            event_signature if event_signature.startswith("0x") else f"0x{event_signature}"
        )
    elif topics:
        topic_filter.append(None)
    topic_filter.extend(_topic(t) if t not in ("", "null") else None for t in topics)

    raw = await clients.rpc.get_logs(
        from_block, to_block,
        address=contract_address,
        topics=topic_filter or None,
    )
    events = [format_log(entry) for entry in raw]
    return {
        "contractAddress": contract_address,
        "eventSignature": event_signature or "all",
        "fromBlock": from_block,
        "toBlock": to_block,
        "events": events,
        "totalEvents": len(events),
    }
