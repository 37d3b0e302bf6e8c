"""Read-only operation catalogue.

Each operation is a stateless coroutine taking a Clients bundle and
returning a JSON-ready dict. Bad input raises ValueError; missing chain
objects raise LookupError.
"""

from ewc_trigger.operations.clients import Clients

__all__ = ["Clients"]
