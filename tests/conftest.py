"""Shared fixtures for ewc_trigger tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from ewc_trigger.chain.constants import MAINNET
from ewc_trigger.models.config import FilterConfig, NetworkSettings, PluginConfig
from ewc_trigger.operations import Clients
from ewc_trigger.storage.sqlite import SQLiteCursorStore
from ewc_trigger.triggers.decoders import build_decoders
from ewc_trigger.triggers.orchestrator import PollOrchestrator

from tests.mocks import MockExplorer, MockOrigin, MockRpc

FIXED_NOW = 1_700_000_123.456


def fixed_clock() -> float:
    return FIXED_NOW


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = MAINNET.name
    meta["Chain ID"] = str(MAINNET.chain_id)
    meta["RPC"] = MAINNET.rpc_url


def make_test_config(**overrides) -> PluginConfig:
    """Build a PluginConfig suitable for testing."""
    defaults = dict(
        poll_interval=1,
        error_backoff=1,
        network=NetworkSettings(network="mainnet"),
        db_path=":memory:",
    )
    defaults.update(overrides)
    return PluginConfig(**defaults)


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
def network_settings():
    return NetworkSettings(network="mainnet")


@pytest.fixture
def filters():
    """Default per-poll parameters: no address filter, 100 block lookback."""
    return FilterConfig()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteCursorStore."""
    s = SQLiteCursorStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def rpc():
    return MockRpc(height=500)


@pytest.fixture
def explorer():
    return MockExplorer()


@pytest.fixture
def origin():
    return MockOrigin()


@pytest.fixture
def orchestrator(rpc, explorer, network_settings):
    """PollOrchestrator over mocked transports with a frozen clock."""
    decoders = build_decoders(rpc, explorer, network_settings, clock=fixed_clock)
    return PollOrchestrator(rpc, decoders, clock=fixed_clock)


@pytest.fixture
def clients(rpc, explorer, origin, network_settings):
    """Operation client bundle backed by the mocks."""
    return Clients(rpc=rpc, explorer=explorer, origin=origin, network=network_settings)
