"""Result types passed between decoders, the orchestrator and the host."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ewc_trigger.models.cursor import BlockRange, PollCursor
from ewc_trigger.models.events import DomainEvent


class DataSource(str, Enum):
    """Where a decoder reads from; decides whether its failures are fatal."""

    CHAIN = "chain"  # primary JSON-RPC node
    INDEXER = "indexer"  # optional explorer API


@dataclass(frozen=True)
class DegradedReason:
    """Why a best-effort decoder produced nothing this poll."""

    kind: str
    source: DataSource
    message: str


@dataclass
class DecoderResult:
    """Events one decoder found in a window."""

    events: list[DomainEvent] = field(default_factory=list)
    skipped_blocks: int = 0  # blocks whose fetch failed (largeTransfer only)
    degraded: DegradedReason | None = None


@dataclass
class PollOutcome:
    """Result of one poll.

    ``events`` is None when there is nothing new to report. ``cursor`` is
    the cursor to persist; it equals the input cursor when the window was
    empty.
    """

    events: list[DomainEvent] | None
    cursor: PollCursor
    window: BlockRange | None = None
    chain_height: int | None = None
    skipped_blocks: int = 0
    duplicates_dropped: int = 0
    degraded: DegradedReason | None = None

    @property
    def cursor_advanced(self) -> bool:
        return self.window is not None

    def records(self) -> list[dict[str, Any]] | None:
        if not self.events:
            return None
        return [event.to_record() for event in self.events]
