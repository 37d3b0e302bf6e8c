"""EventDecoder protocol - turns one block window into typed events of one kind."""

from __future__ import annotations

from typing import Protocol

from ewc_trigger.models.config import FilterConfig
from ewc_trigger.models.cursor import BlockRange
from ewc_trigger.models.events import TriggerKind
from ewc_trigger.models.records import DataSource, DecoderResult


class EventDecoder(Protocol):
    """Decodes events of a single kind from a block window."""

    kind: TriggerKind
    source: DataSource

    async def decode(self, window: BlockRange, config: FilterConfig) -> DecoderResult:
        """Return matching events in discovery order. Never touches the cursor."""
        ...
