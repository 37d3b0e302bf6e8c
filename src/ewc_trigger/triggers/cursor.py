"""Cursor policy: scan-window computation, dedup and bounded advancement."""

from __future__ import annotations

from typing import Sequence

from ewc_trigger.chain.constants import DEDUP_WINDOW
from ewc_trigger.models.cursor import BlockRange, PollCursor
from ewc_trigger.models.events import DomainEvent


def scan_window(cursor: PollCursor, chain_height: int, lookback_blocks: int) -> BlockRange:
    """Blocks to scan this poll; may be empty when the chain has not moved."""
    if cursor.never_polled:
        from_block = max(0, chain_height - lookback_blocks)
    else:
        from_block = cursor.last_block_number + 1
    return BlockRange(from_block, chain_height)


def drop_seen(
    cursor: PollCursor, events: Sequence[DomainEvent],
) -> tuple[list[DomainEvent], int]:
    """Remove events whose tx hash the cursor already emitted.

    Returns (kept events, number dropped).
    """
    seen = set(cursor.processed_tx_hashes)
    kept = [e for e in events if e.transaction_hash not in seen]
    return kept, len(events) - len(kept)


def advance(
    cursor: PollCursor,
    chain_height: int,
    emitted: Sequence[DomainEvent],
    now_ms: int,
    window_size: int = DEDUP_WINDOW,
) -> PollCursor:
    """Cursor after a completed poll up to ``chain_height``.

    The hash list is the old list followed by newly emitted hashes, trimmed
    to the newest ``window_size`` entries.
    """
    hashes = list(cursor.processed_tx_hashes)
    present = set(hashes)
    for event in emitted:
        tx_hash = event.transaction_hash
        if tx_hash and tx_hash not in present:
            hashes.append(tx_hash)
            present.add(tx_hash)

    return PollCursor(
        last_block_number=chain_height,
        last_timestamp=now_ms,
        processed_tx_hashes=tuple(hashes[-window_size:]),
    )
