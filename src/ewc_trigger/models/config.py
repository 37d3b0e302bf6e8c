"""Configuration models for the trigger runtime."""

from __future__ import annotations

from dataclasses import dataclass, field

from ewc_trigger.chain.constants import (
    DID_REGISTRY_ADDRESS,
    ORIGIN_API_URL,
    NetworkInfo,
    network_info,
)
from ewc_trigger.chain.units import is_valid_address
from ewc_trigger.models.events import TriggerKind


@dataclass
class FilterConfig:
    """Per-poll parameters for one trigger instance."""

    filter_address: str | None = None
    transfer_threshold: float | int = 100  # EWT, largeTransfer only
    lookback_blocks: int = 100  # first poll only
    contract_address: str | None = None  # certificate contract scoping

    @property
    def address_filter(self) -> str | None:
        """Lower-cased filter address, or None when unset or malformed."""
        if self.filter_address and is_valid_address(self.filter_address):
            return self.filter_address.lower()
        return None

    def matches(self, *participants: str | None) -> bool:
        """True when no filter is active or any participant equals it."""
        wanted = self.address_filter
        if wanted is None:
            return True
        return any(p is not None and p.lower() == wanted for p in participants)


@dataclass
class TriggerConfig:
    """One configured trigger instance; ``name`` keys its cursor."""

    name: str
    kind: TriggerKind
    filters: FilterConfig = field(default_factory=FilterConfig)


@dataclass
class NetworkSettings:
    """Remote endpoints and credentials."""

    network: str = "mainnet"  # mainnet | volta | custom
    rpc_url: str = ""
    explorer_api_key: str = ""
    origin_api_url: str = ""
    did_registry_address: str = DID_REGISTRY_ADDRESS
    timeout: int = 30  # seconds per request

    @property
    def info(self) -> NetworkInfo:
        return network_info(self.network)

    @property
    def name(self) -> str:
        """Human label stamped on every emitted event."""
        return self.info.name

    def rpc_endpoint(self) -> str:
        if self.rpc_url:
            return self.rpc_url
        return self.info.rpc_url

    def explorer_endpoint(self) -> str:
        return self.info.explorer_api_url

    def origin_endpoint(self) -> str:
        return self.origin_api_url or ORIGIN_API_URL.get(self.network, ORIGIN_API_URL["mainnet"])


@dataclass
class PluginConfig:
    """Complete runtime configuration."""

    # Daemon
    poll_interval: int = 15  # seconds
    error_backoff: int = 30  # seconds
    log_level: str = "info"

    # Remote services
    network: NetworkSettings = field(default_factory=NetworkSettings)

    # Storage
    db_path: str = "~/.ewc_trigger/cursors.db"

    # Trigger instances
    triggers: list[TriggerConfig] = field(default_factory=list)
