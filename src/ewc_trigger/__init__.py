"""ewc_trigger - Energy Web Chain event triggers and read-only operations."""

__version__ = "0.1.0"
