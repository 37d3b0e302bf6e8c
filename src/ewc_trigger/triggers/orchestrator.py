"""Poll orchestrator - computes the window, runs a decoder, dedups, advances the cursor."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from ewc_trigger.chain.transport import TransportError
from ewc_trigger.interfaces.decoder import EventDecoder
from ewc_trigger.interfaces.store import CursorStore
from ewc_trigger.interfaces.transport import ChainRpc
from ewc_trigger.models.config import FilterConfig
from ewc_trigger.models.cursor import PollCursor
from ewc_trigger.models.events import TriggerKind
from ewc_trigger.models.records import (
    DataSource,
    DecoderResult,
    DegradedReason,
    PollOutcome,
)
from ewc_trigger.triggers import cursor as cursor_policy

log = logging.getLogger(__name__)

# What a transport failure inside a decoder means, by the decoder's source
FAILURE_POLICY: dict[DataSource, str] = {
    DataSource.CHAIN: "fatal",
    DataSource.INDEXER: "degrade",
}


class PollError(Exception):
    """A poll aborted; the cursor was left untouched."""


class PollOrchestrator:
    """Runs one poll for a trigger kind against a given cursor.

    Pure with respect to state: the caller owns the cursor and decides
    when to persist the one returned in the outcome.
    """

    def __init__(
        self,
        rpc: ChainRpc,
        decoders: Mapping[TriggerKind, EventDecoder],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rpc = rpc
        self._decoders = dict(decoders)
        self._clock = clock

    def decoder_for(self, kind: TriggerKind) -> EventDecoder:
        try:
            return self._decoders[TriggerKind(kind)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown trigger type: {kind}") from None

    async def poll(
        self,
        cursor: PollCursor,
        kind: TriggerKind,
        config: FilterConfig,
    ) -> PollOutcome:
        decoder = self.decoder_for(kind)

        height = await self._rpc.block_number()
        window = cursor_policy.scan_window(cursor, height, config.lookback_blocks)
        if window.is_empty:
            log.debug("%s: no new blocks (height %d)", decoder.kind.value, height)
            return PollOutcome(events=None, cursor=cursor, chain_height=height)

        log.info(
            "%s: scanning blocks %d-%d (%d blocks)",
            decoder.kind.value, window.from_block, window.to_block, len(window),
        )
        result = await self._run_decoder(decoder, window, config)

        fresh, dropped = cursor_policy.drop_seen(cursor, result.events)
        new_cursor = cursor_policy.advance(
            cursor, height, fresh, now_ms=int(self._clock() * 1000),
        )

        if result.skipped_blocks:
            log.warning(
                "%s: %d block(s) skipped after fetch errors in %d-%d",
                decoder.kind.value, result.skipped_blocks,
                window.from_block, window.to_block,
            )
        if fresh:
            log.info("%s: %d new event(s)", decoder.kind.value, len(fresh))

        return PollOutcome(
            events=fresh or None,
            cursor=new_cursor,
            window=window,
            chain_height=height,
            skipped_blocks=result.skipped_blocks,
            duplicates_dropped=dropped,
            degraded=result.degraded,
        )

    async def _run_decoder(self, decoder: EventDecoder, window, config) -> DecoderResult:
        try:
            return await decoder.decode(window, config)
        except TransportError as exc:
            if FAILURE_POLICY.get(decoder.source) != "degrade":
                raise
            log.warning(
                "%s: %s source unavailable, no events this poll: %s",
                decoder.kind.value, decoder.source.value, exc,
            )
            return DecoderResult(
                degraded=DegradedReason(
                    kind=decoder.kind.value, source=decoder.source, message=str(exc),
                ),
            )


class TriggerRunner:
    """Binds an orchestrator to one trigger instance and its persisted cursor."""

    def __init__(
        self,
        orchestrator: PollOrchestrator,
        store: CursorStore,
        instance_id: str,
        kind: TriggerKind,
        config: FilterConfig,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self.instance_id = instance_id
        self.kind = TriggerKind(kind)
        self.config = config
        self.last_outcome: PollOutcome | None = None

    async def run_once(self) -> list[dict[str, Any]] | None:
        """Poll once; returns flat event records or None when nothing is new.

        The cursor is saved only after the whole window was processed.
        """
        cursor = await self._store.load(self.instance_id)
        try:
            outcome = await self._orchestrator.poll(cursor, self.kind, self.config)
        except Exception as exc:
            raise PollError(f"Poll failed: {exc}") from exc

        if outcome.cursor != cursor:
            await self._store.save(self.instance_id, outcome.cursor)
            log.debug(
                "%s: cursor -> block %d",
                self.instance_id, outcome.cursor.last_block_number,
            )

        self.last_outcome = outcome
        return outcome.records()
