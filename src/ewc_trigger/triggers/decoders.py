"""Event decoders - one per trigger kind.

Log decoders issue a single eth_getLogs over the window and map each
entry to a typed event. The asset decoder reads the explorer API instead,
and the large-transfer decoder scans full blocks in fixed-size batches.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ewc_trigger.chain.constants import (
    ASSET_REGISTERED_TOPIC_NAME,
    CERTIFICATE_ISSUED_TOPIC,
    CERTIFICATE_TRANSFER_TOPIC,
    DID_ATTRIBUTE_CHANGED_TOPIC,
    DID_OWNER_CHANGED_TOPIC,
    LARGE_TRANSFER_BATCH_SIZE,
)
from ewc_trigger.chain.units import (
    did_for,
    ewt_to_wei,
    same_address,
    topic_to_address,
    wei_to_units,
)
from ewc_trigger.interfaces.decoder import EventDecoder
from ewc_trigger.interfaces.transport import ChainRpc, IndexerApi
from ewc_trigger.models.config import FilterConfig, NetworkSettings
from ewc_trigger.models.cursor import BlockRange
from ewc_trigger.models.events import (
    AssetRegistered,
    Block,
    CertificateIssued,
    CertificateTransferred,
    DIDCreated,
    DIDUpdated,
    DomainEvent,
    LargeTransfer,
    RawLog,
    TriggerKind,
)
from ewc_trigger.models.records import DataSource, DecoderResult

log = logging.getLogger(__name__)

Clock = Callable[[], float]


def _log_order(entries: list[RawLog]) -> list[RawLog]:
    return sorted(entries, key=lambda e: (e.block_number, e.log_index))


def _topic_number(topic: str | None) -> str:
    """Decimal string of a numeric topic; "unknown" when absent or not hex."""
    if not topic:
        return "unknown"
    try:
        return str(int(topic, 16))
    except ValueError:
        log.debug("Unparseable numeric topic %r", topic)
        return "unknown"


class _LogDecoder:
    """Shared eth_getLogs plumbing for the four chain-log decoders."""

    kind: TriggerKind
    source = DataSource.CHAIN
    topic: str

    def __init__(
        self,
        rpc: ChainRpc,
        network: NetworkSettings,
        clock: Clock = time.time,
    ) -> None:
        self._rpc = rpc
        self._network = network
        self._clock = clock

    def _contract(self, config: FilterConfig) -> str | None:
        return config.contract_address or None

    def _parse(self, entry: RawLog, config: FilterConfig, now_ms: int) -> DomainEvent | None:
        raise NotImplementedError

    async def decode(self, window: BlockRange, config: FilterConfig) -> DecoderResult:
        raw = await self._rpc.get_logs(
            window.from_block,
            window.to_block,
            address=self._contract(config),
            topics=[self.topic],
        )
        now_ms = int(self._clock() * 1000)
        events = []
        for entry in _log_order([RawLog.from_rpc(r) for r in raw]):
            event = self._parse(entry, config, now_ms)
            if event is not None:
                events.append(event)
        log.debug(
            "%s: %d logs, %d events in [%d, %d]",
            self.kind.value, len(raw), len(events), window.from_block, window.to_block,
        )
        return DecoderResult(events=events)


class CertificateIssuedDecoder(_LogDecoder):
    kind = TriggerKind.CERTIFICATE_ISSUED
    topic = CERTIFICATE_ISSUED_TOPIC

    def _parse(self, entry: RawLog, config: FilterConfig, now_ms: int) -> DomainEvent | None:
        certificate_id = _topic_number(entry.topic(1))
        to = topic_to_address(entry.topic(2))

        if not config.matches(to):
            return None

        return CertificateIssued(
            certificate_id=certificate_id,
            to=to,
            contract_address=entry.address,
            block_number=entry.block_number,
            transaction_hash=entry.transaction_hash,
            log_index=entry.log_index,
            network=self._network.name,
            timestamp=now_ms,
        )


class CertificateTransferredDecoder(_LogDecoder):
    kind = TriggerKind.CERTIFICATE_TRANSFERRED
    topic = CERTIFICATE_TRANSFER_TOPIC

    def _parse(self, entry: RawLog, config: FilterConfig, now_ms: int) -> DomainEvent | None:
        # topic[1] is the operator
        sender = topic_to_address(entry.topic(2))
        to = topic_to_address(entry.topic(3))

        if not config.matches(sender, to):
            return None

        return CertificateTransferred(
            from_address=sender,
            to=to,
            contract_address=entry.address,
            block_number=entry.block_number,
            transaction_hash=entry.transaction_hash,
            log_index=entry.log_index,
            network=self._network.name,
            timestamp=now_ms,
        )


class DIDCreatedDecoder(_LogDecoder):
    """DIDOwnerChanged logs where the identity owns itself, i.e. a fresh DID."""

    kind = TriggerKind.DID_CREATED
    topic = DID_OWNER_CHANGED_TOPIC

    def _contract(self, config: FilterConfig) -> str | None:
        return self._network.did_registry_address

    def _parse(self, entry: RawLog, config: FilterConfig, now_ms: int) -> DomainEvent | None:
        identity = topic_to_address(entry.topic(1))
        # First data word holds the owner address
        owner = "0x" + entry.data[26:66] if entry.data else "unknown"

        if not same_address(identity, owner):
            return None
        if not config.matches(identity):
            return None

        return DIDCreated(
            did=did_for(identity, self._network.network),
            identity=identity,
            owner=owner,
            block_number=entry.block_number,
            transaction_hash=entry.transaction_hash,
            log_index=entry.log_index,
            network=self._network.name,
            timestamp=now_ms,
        )


class DIDUpdatedDecoder(_LogDecoder):
    kind = TriggerKind.DID_UPDATED
    topic = DID_ATTRIBUTE_CHANGED_TOPIC

    def _contract(self, config: FilterConfig) -> str | None:
        return self._network.did_registry_address

    def _parse(self, entry: RawLog, config: FilterConfig, now_ms: int) -> DomainEvent | None:
        identity = topic_to_address(entry.topic(1))
        if not config.matches(identity):
            return None

        return DIDUpdated(
            did=did_for(identity, self._network.network),
            identity=identity,
            block_number=entry.block_number,
            transaction_hash=entry.transaction_hash,
            log_index=entry.log_index,
            network=self._network.name,
            timestamp=now_ms,
        )


class AssetRegisteredDecoder:
    """Asset registrations from the explorer's log index.

    Best-effort: the orchestrator treats this decoder's transport failures
    as a degraded poll rather than an error.
    """

    kind = TriggerKind.ASSET_REGISTERED
    source = DataSource.INDEXER

    def __init__(
        self,
        indexer: IndexerApi,
        network: NetworkSettings,
        clock: Clock = time.time,
    ) -> None:
        self._indexer = indexer
        self._network = network
        self._clock = clock

    async def decode(self, window: BlockRange, config: FilterConfig) -> DecoderResult:
        response = await self._indexer.get(
            "/v1/logs",
            {
                "from_block": window.from_block,
                "to_block": window.to_block,
                "topic": ASSET_REGISTERED_TOPIC_NAME,
            },
        )
        if isinstance(response, dict):
            items = response.get("items") or []
        else:
            items = []

        now_ms = int(self._clock() * 1000)
        events: list[DomainEvent] = []
        for entry in _log_order([RawLog.from_explorer(i) for i in items]):
            owner = topic_to_address(entry.topic(1))
            if not config.matches(owner):
                continue
            events.append(
                AssetRegistered(
                    owner=owner,
                    contract_address=entry.address,
                    block_number=entry.block_number,
                    transaction_hash=entry.transaction_hash,
                    log_index=entry.log_index,
                    network=self._network.name,
                    timestamp=now_ms,
                )
            )
        return DecoderResult(events=events)


class LargeTransferDecoder:
    """Scans every transaction in the window for values at or above the threshold.

    Blocks are fetched in batches of ``batch_size``; blocks inside a batch
    are requested concurrently and consumed in block order. A block whose
    fetch fails is counted in ``skipped_blocks`` and contributes nothing.
    """

    kind = TriggerKind.LARGE_TRANSFER
    source = DataSource.CHAIN

    def __init__(
        self,
        rpc: ChainRpc,
        network: NetworkSettings,
        batch_size: int = LARGE_TRANSFER_BATCH_SIZE,
    ) -> None:
        self._rpc = rpc
        self._network = network
        self._batch_size = batch_size

    async def _fetch_block(self, number: int) -> Block | None:
        raw = await self._rpc.get_block(number, True)
        if not raw or not raw.get("transactions"):
            return None
        return Block.from_rpc(raw)

    async def decode(self, window: BlockRange, config: FilterConfig) -> DecoderResult:
        threshold_wei = ewt_to_wei(config.transfer_threshold)
        result = DecoderResult()

        for batch in window.batches(self._batch_size):
            numbers = list(range(batch.from_block, batch.to_block + 1))
            fetched = await asyncio.gather(
                *(self._fetch_block(n) for n in numbers), return_exceptions=True,
            )
            for number, block in zip(numbers, fetched):
                # CancelledError is a BaseException and still propagates
                if isinstance(block, Exception):
                    result.skipped_blocks += 1
                    log.warning("largeTransfer: skipping block %d: %s", number, block)
                    continue
                if isinstance(block, BaseException):
                    raise block
                if block is None:
                    continue
                result.events.extend(self._scan_block(block, config, threshold_wei))

        return result

    def _scan_block(
        self, block: Block, config: FilterConfig, threshold_wei: int,
    ) -> list[DomainEvent]:
        events: list[DomainEvent] = []
        for tx in sorted(block.transactions, key=lambda t: t.transaction_index):
            if tx.value < threshold_wei:
                continue
            if not config.matches(tx.from_address, tx.to_address):
                continue
            events.append(
                LargeTransfer(
                    from_address=tx.from_address,
                    to=tx.to_address,
                    value=str(tx.value),
                    value_ewt=wei_to_units(tx.value).ewt,
                    threshold=config.transfer_threshold,
                    block_number=block.number,
                    transaction_hash=tx.hash,
                    network=self._network.name,
                    timestamp=block.timestamp * 1000,
                )
            )
        return events


def build_decoders(
    rpc: ChainRpc,
    indexer: IndexerApi,
    network: NetworkSettings,
    clock: Clock = time.time,
) -> dict[TriggerKind, EventDecoder]:
    """Decoder registry keyed by trigger kind."""
    return {
        TriggerKind.CERTIFICATE_ISSUED: CertificateIssuedDecoder(rpc, network, clock),
        TriggerKind.CERTIFICATE_TRANSFERRED: CertificateTransferredDecoder(rpc, network, clock),
        TriggerKind.DID_CREATED: DIDCreatedDecoder(rpc, network, clock),
        TriggerKind.DID_UPDATED: DIDUpdatedDecoder(rpc, network, clock),
        TriggerKind.ASSET_REGISTERED: AssetRegisteredDecoder(indexer, network, clock),
        TriggerKind.LARGE_TRANSFER: LargeTransferDecoder(rpc, network),
    }
