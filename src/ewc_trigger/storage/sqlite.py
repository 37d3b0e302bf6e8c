"""SQLite implementation of the CursorStore protocol."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ewc_trigger.models.cursor import PollCursor

SCHEMA = """
-- One cursor blob per trigger instance
CREATE TABLE IF NOT EXISTS cursors (
    instance_id TEXT PRIMARY KEY,
    state TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteCursorStore:
    """SQLite-backed implementation of the CursorStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Cursors ────────────────────────────────────────────

    async def load(self, instance_id: str) -> PollCursor:
        async with self.db.execute(
            "SELECT state FROM cursors WHERE instance_id=?", (instance_id,)
        ) as cur:
            row = await cur.fetchone()
        if row is None:
            return PollCursor()
        return PollCursor.from_dict(json.loads(row["state"]))

    async def save(self, instance_id: str, cursor: PollCursor) -> None:
        await self.db.execute(
            "INSERT INTO cursors (instance_id, state, updated_at) VALUES (?, ?, ?)"
            " ON CONFLICT(instance_id) DO UPDATE SET state=excluded.state,"
            " updated_at=excluded.updated_at",
            (instance_id, json.dumps(cursor.to_dict()), _now()),
        )
        await self.db.commit()

    async def reset(self, instance_id: str) -> None:
        await self.db.execute("DELETE FROM cursors WHERE instance_id=?", (instance_id,))
        await self.db.commit()

    async def list_instances(self) -> list[str]:
        async with self.db.execute(
            "SELECT instance_id FROM cursors ORDER BY instance_id"
        ) as cur:
            rows = await cur.fetchall()
        return [row["instance_id"] for row in rows]


class MemoryCursorStore:
    """In-process CursorStore for one-shot polls and tests."""

    def __init__(self) -> None:
        self._cursors: dict[str, dict] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def load(self, instance_id: str) -> PollCursor:
        return PollCursor.from_dict(self._cursors.get(instance_id))

    async def save(self, instance_id: str, cursor: PollCursor) -> None:
        # Stored serialized, as the SQLite store does
        self._cursors[instance_id] = cursor.to_dict()

    async def reset(self, instance_id: str) -> None:
        self._cursors.pop(instance_id, None)

    async def list_instances(self) -> list[str]:
        return sorted(self._cursors)
