"""Poll cursor - the only state a trigger instance keeps between polls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PollCursor:
    """Progress bookmark for one trigger instance.

    ``last_block_number == 0`` means the instance has never polled.
    ``processed_tx_hashes`` is a trailing window of recently emitted
    transaction hashes, oldest first.
    """

    last_block_number: int = 0
    last_timestamp: int = 0  # epoch ms of the last successful poll
    processed_tx_hashes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def never_polled(self) -> bool:
        return self.last_block_number == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastBlockNumber": self.last_block_number,
            "lastTimestamp": self.last_timestamp,
            "processedTxHashes": list(self.processed_tx_hashes),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> PollCursor:
        """Restore from a persisted blob; missing keys fall back to the initial state."""
        if not raw:
            return cls()
        return cls(
            last_block_number=int(raw.get("lastBlockNumber") or 0),
            last_timestamp=int(raw.get("lastTimestamp") or 0),
            processed_tx_hashes=tuple(
                h for h in raw.get("processedTxHashes") or () if h
            ),
        )


@dataclass(frozen=True)
class BlockRange:
    """Inclusive [from_block, to_block] scan window."""

    from_block: int
    to_block: int

    @property
    def is_empty(self) -> bool:
        return self.from_block > self.to_block

    def __len__(self) -> int:
        return 0 if self.is_empty else self.to_block - self.from_block + 1

    def batches(self, size: int):
        """Yield consecutive sub-ranges of at most ``size`` blocks."""
        start = self.from_block
        while start <= self.to_block:
            end = min(start + size - 1, self.to_block)
            yield BlockRange(start, end)
            start = end + 1
