"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from ewc_trigger.models.config import FilterConfig, PluginConfig, TriggerConfig
from ewc_trigger.models.events import TriggerKind


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "EWC_TRIGGER_",
) -> PluginConfig:
    """Load runtime configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (EWC_TRIGGER_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from PluginConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = PluginConfig()

    # ── Network section ────────────────────────────────────
    network = raw.get("network", {})
    net = cfg.network
    if v := network.get("network"):
        net.network = str(v)
    if v := network.get("rpc_url"):
        net.rpc_url = str(v)
    if v := network.get("explorer_api_key"):
        net.explorer_api_key = str(v)
    if v := network.get("origin_api_url"):
        net.origin_api_url = str(v)
    if v := network.get("did_registry_address"):
        net.did_registry_address = str(v)
    if v := network.get("timeout"):
        net.timeout = int(v)

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("poll_interval"):
        cfg.poll_interval = int(v)
    if v := daemon.get("error_backoff"):
        cfg.error_backoff = int(v)
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Trigger instances ──────────────────────────────────
    for entry in raw.get("triggers", []):
        cfg.triggers.append(_trigger_from_toml(entry))

    # ── Environment variable overrides (highest priority) ──
    if v := os.environ.get(f"{env_prefix}NETWORK"):
        net.network = v
    if v := os.environ.get(f"{env_prefix}RPC_URL"):
        net.rpc_url = v
    if v := os.environ.get(f"{env_prefix}EXPLORER_API_KEY"):
        net.explorer_api_key = v
    if v := os.environ.get(f"{env_prefix}ORIGIN_API_URL"):
        net.origin_api_url = v
    if v := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = v

    # Expand ~ in paths
    cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _trigger_from_toml(entry: dict) -> TriggerConfig:
    kind = TriggerKind(entry["kind"])
    filters = FilterConfig(
        filter_address=entry.get("filter_address") or None,
        transfer_threshold=entry.get("transfer_threshold", 100),
        lookback_blocks=int(entry.get("lookback_blocks", 100)),
        contract_address=entry.get("contract_address") or None,
    )
    return TriggerConfig(name=entry.get("name") or kind.value, kind=kind, filters=filters)
