"""Raw chain records and the typed domain events decoded from them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ewc_trigger.chain.units import hex_to_int


class TriggerKind(str, Enum):
    """The six event kinds a trigger instance can watch."""

    CERTIFICATE_ISSUED = "certificateIssued"
    CERTIFICATE_TRANSFERRED = "certificateTransferred"
    DID_CREATED = "didCreated"
    DID_UPDATED = "didUpdated"
    ASSET_REGISTERED = "assetRegistered"
    LARGE_TRANSFER = "largeTransfer"


# ── Raw records ────────────────────────────────────────


@dataclass(frozen=True)
class RawLog:
    """One log entry as delivered by the node or the explorer."""

    address: str
    topics: tuple[str, ...]
    data: str
    block_number: int
    transaction_hash: str
    log_index: int

    def topic(self, index: int) -> str | None:
        return self.topics[index] if index < len(self.topics) else None

    @classmethod
    def from_rpc(cls, raw: dict[str, Any]) -> RawLog:
        """Build from eth_getLogs output (hex quantities)."""
        return cls(
            address=raw.get("address", ""),
            topics=tuple(raw.get("topics") or ()),
            data=raw.get("data") or "",
            block_number=hex_to_int(raw.get("blockNumber")),
            transaction_hash=raw.get("transactionHash", ""),
            log_index=hex_to_int(raw.get("logIndex")),
        )

    @classmethod
    def from_explorer(cls, raw: dict[str, Any]) -> RawLog:
        """Build from an EW Scan /v1/logs item (snake_case, integer fields)."""
        return cls(
            address=raw.get("address", ""),
            topics=tuple(raw.get("topics") or ()),
            data=raw.get("data") or "",
            block_number=int(raw.get("block_number") or 0),
            transaction_hash=raw.get("transaction_hash", ""),
            log_index=int(raw.get("log_index") or 0),
        )


@dataclass(frozen=True)
class BlockTransaction:
    hash: str
    from_address: str
    to_address: str | None
    value: int  # wei
    transaction_index: int


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int  # unix seconds
    transactions: tuple[BlockTransaction, ...]

    @classmethod
    def from_rpc(cls, raw: dict[str, Any]) -> Block:
        """Build from eth_getBlockByNumber(n, true) output.

        Transaction hashes without bodies (full=false) are skipped.
        """
        txs = []
        for position, tx in enumerate(raw.get("transactions") or ()):
            if not isinstance(tx, dict):
                continue
            index = tx.get("transactionIndex")
            txs.append(
                BlockTransaction(
                    hash=tx.get("hash", ""),
                    from_address=tx.get("from", ""),
                    to_address=tx.get("to"),
                    value=hex_to_int(tx.get("value") or "0x0"),
                    transaction_index=hex_to_int(index) if index is not None else position,
                )
            )
        return cls(
            number=hex_to_int(raw.get("number")),
            timestamp=hex_to_int(raw.get("timestamp")),
            transactions=tuple(txs),
        )


# ── Domain events ──────────────────────────────────────


@dataclass(frozen=True)
class CertificateIssued:
    """A renewable energy certificate was minted to ``to``."""

    certificate_id: str
    to: str
    contract_address: str
    block_number: int
    transaction_hash: str
    log_index: int
    network: str
    timestamp: int  # epoch ms
    event_type: str = TriggerKind.CERTIFICATE_ISSUED.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "certificateId": self.certificate_id,
            "to": self.to,
            "contractAddress": self.contract_address,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
            "network": self.network,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CertificateTransferred:
    """A certificate moved between two holders."""

    from_address: str
    to: str
    contract_address: str
    block_number: int
    transaction_hash: str
    log_index: int
    network: str
    timestamp: int
    event_type: str = TriggerKind.CERTIFICATE_TRANSFERRED.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "from": self.from_address,
            "to": self.to,
            "contractAddress": self.contract_address,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
            "network": self.network,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DIDCreated:
    """A self-owned identity appeared in the DID registry."""

    did: str
    identity: str
    owner: str
    block_number: int
    transaction_hash: str
    log_index: int
    network: str
    timestamp: int
    event_type: str = TriggerKind.DID_CREATED.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "did": self.did,
            "identity": self.identity,
            "owner": self.owner,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
            "network": self.network,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DIDUpdated:
    """An attribute of a DID document changed."""

    did: str
    identity: str
    block_number: int
    transaction_hash: str
    log_index: int
    network: str
    timestamp: int
    event_type: str = TriggerKind.DID_UPDATED.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "did": self.did,
            "identity": self.identity,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
            "network": self.network,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AssetRegistered:
    """An energy asset was registered (reported by the explorer)."""

    owner: str
    contract_address: str
    block_number: int
    transaction_hash: str
    log_index: int
    network: str
    timestamp: int
    event_type: str = TriggerKind.ASSET_REGISTERED.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "owner": self.owner,
            "contractAddress": self.contract_address,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
            "network": self.network,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class LargeTransfer:
    """A native-token transfer at or above the configured threshold."""

    from_address: str
    to: str | None
    value: str  # wei, decimal string
    value_ewt: str
    threshold: float | int
    block_number: int
    transaction_hash: str
    network: str
    timestamp: int  # block time, epoch ms
    event_type: str = TriggerKind.LARGE_TRANSFER.value

    def to_record(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "valueEwt": self.value_ewt,
            "threshold": self.threshold,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "network": self.network,
            "timestamp": self.timestamp,
        }


DomainEvent = Union[
    CertificateIssued,
    CertificateTransferred,
    DIDCreated,
    DIDUpdated,
    AssetRegistered,
    LargeTransfer,
]
