"""Cursor persistence."""

from ewc_trigger.storage.sqlite import MemoryCursorStore, SQLiteCursorStore

__all__ = ["MemoryCursorStore", "SQLiteCursorStore"]
