"""Protocol interfaces for ewc_trigger components."""

from ewc_trigger.interfaces.decoder import EventDecoder
from ewc_trigger.interfaces.store import CursorStore
from ewc_trigger.interfaces.transport import ChainRpc, IndexerApi

__all__ = ["EventDecoder", "CursorStore", "ChainRpc", "IndexerApi"]
