"""Data models for ewc_trigger."""

from ewc_trigger.models.events import (
    AssetRegistered,
    Block,
    BlockTransaction,
    CertificateIssued,
    CertificateTransferred,
    DIDCreated,
    DIDUpdated,
    DomainEvent,
    LargeTransfer,
    RawLog,
    TriggerKind,
)
from ewc_trigger.models.cursor import BlockRange, PollCursor
from ewc_trigger.models.records import DataSource, DecoderResult, DegradedReason, PollOutcome
from ewc_trigger.models.config import (
    FilterConfig,
    NetworkSettings,
    PluginConfig,
    TriggerConfig,
)

__all__ = [
    "AssetRegistered", "Block", "BlockTransaction", "CertificateIssued",
    "CertificateTransferred", "DIDCreated", "DIDUpdated", "DomainEvent",
    "LargeTransfer", "RawLog", "TriggerKind",
    "BlockRange", "PollCursor",
    "DataSource", "DecoderResult", "DegradedReason", "PollOutcome",
    "FilterConfig", "NetworkSettings", "PluginConfig", "TriggerConfig",
]
