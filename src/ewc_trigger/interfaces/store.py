"""CursorStore protocol - durable per-instance cursor persistence."""

from __future__ import annotations

from typing import Protocol

from ewc_trigger.models.cursor import PollCursor


class CursorStore(Protocol):
    """Persists one opaque cursor per trigger instance."""

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def load(self, instance_id: str) -> PollCursor:
        """Current cursor; the initial cursor if the instance never saved one."""
        ...

    async def save(self, instance_id: str, cursor: PollCursor) -> None:
        """Replace the cursor in one atomic write."""
        ...

    async def reset(self, instance_id: str) -> None:
        ...

    async def list_instances(self) -> list[str]:
        ...
