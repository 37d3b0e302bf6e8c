"""Event-polling core: decoders, cursor policy and the poll orchestrator."""

from ewc_trigger.triggers.decoders import build_decoders
from ewc_trigger.triggers.orchestrator import (
    FAILURE_POLICY,
    PollError,
    PollOrchestrator,
    TriggerRunner,
)

__all__ = [
    "FAILURE_POLICY", "PollError", "PollOrchestrator", "TriggerRunner", "build_decoders",
]
