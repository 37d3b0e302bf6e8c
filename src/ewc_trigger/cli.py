"""CLI entry point for ewc_trigger."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable

import click

from ewc_trigger.chain.transport import TransportError
from ewc_trigger.config import load_config
from ewc_trigger.daemon import run_daemon
from ewc_trigger.models.config import FilterConfig, PluginConfig
from ewc_trigger.models.events import TriggerKind
from ewc_trigger.operations import Clients
from ewc_trigger.operations import (
    accounts,
    assets,
    dids,
    events,
    network,
    origin,
    transactions,
    utility,
)
from ewc_trigger.operations import tokens as tokens_ops
from ewc_trigger.storage.sqlite import MemoryCursorStore, SQLiteCursorStore
from ewc_trigger.triggers.decoders import build_decoders
from ewc_trigger.triggers.orchestrator import PollError, PollOrchestrator, TriggerRunner

KINDS = [k.value for k in TriggerKind]


def _require_rpc(cfg: PluginConfig) -> None:
    """Exit with error if a custom network has no RPC endpoint."""
    if cfg.network.network == "custom" and not cfg.network.rpc_url:
        click.echo("Error: Custom network selected but no RPC URL configured.", err=True)
        click.echo("Set EWC_TRIGGER_RPC_URL or rpc_url in [network].", err=True)
        sys.exit(1)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _run_op(ctx: click.Context, op: Callable[[Clients], Awaitable[dict]]) -> None:
    """Run one catalogue operation against fresh clients and print its result."""
    cfg = load_config(ctx.obj["config_path"])
    _require_rpc(cfg)

    async def _op():
        async with Clients.from_settings(cfg.network) as clients:
            return await op(clients)

    try:
        result = asyncio.run(_op())
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    except (LookupError, TransportError) as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(result)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ewc-trigger - Energy Web Chain event triggers and chain queries."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the polling daemon for every configured trigger."""
    cfg = load_config(ctx.obj["config_path"])
    _require_rpc(cfg)
    if not cfg.triggers:
        click.echo("Error: No [[triggers]] configured.", err=True)
        sys.exit(1)

    click.echo(f"Starting ewc_trigger daemon ({len(cfg.triggers)} trigger(s))", err=True)
    asyncio.run(run_daemon(cfg))


@cli.command()
@click.argument("kind", type=click.Choice(KINDS))
@click.option("--name", default=None, help="Trigger instance id (cursor key); defaults to KIND")
@click.option("--filter-address", default=None, help="Only events involving this address")
@click.option("--threshold", type=float, default=100, help="largeTransfer threshold in EWT")
@click.option("--lookback", type=int, default=100, help="Blocks to scan on the first poll")
@click.option("--contract", default=None, help="Certificate contract address")
@click.option("--no-store", is_flag=True, help="Do not load or save a persisted cursor")
@click.pass_context
def poll(
    ctx: click.Context,
    kind: str,
    name: str | None,
    filter_address: str | None,
    threshold: float,
    lookback: int,
    contract: str | None,
    no_store: bool,
) -> None:
    """Poll one trigger kind once and print new events as JSON lines."""
    cfg = load_config(ctx.obj["config_path"])
    _require_rpc(cfg)
    filters = FilterConfig(
        filter_address=filter_address,
        transfer_threshold=int(threshold) if threshold == int(threshold) else threshold,
        lookback_blocks=lookback,
        contract_address=contract,
    )

    async def _poll():
        store = MemoryCursorStore() if no_store else SQLiteCursorStore(cfg.db_path)
        async with Clients.from_settings(cfg.network) as clients:
            await store.initialize()
            try:
                orchestrator = PollOrchestrator(
                    clients.rpc, build_decoders(clients.rpc, clients.explorer, cfg.network),
                )
                runner = TriggerRunner(orchestrator, store, name or kind, TriggerKind(kind), filters)
                records = await runner.run_once()
                return records, runner.last_outcome
            finally:
                await store.close()

    try:
        records, outcome = asyncio.run(_poll())
    except PollError as exc:
        raise click.ClickException(str(exc)) from exc

    for record in records or ():
        click.echo(json.dumps(record))
    if outcome.degraded:
        click.echo(f"Warning: {outcome.degraded.kind} degraded: {outcome.degraded.message}", err=True)
    if outcome.skipped_blocks:
        click.echo(f"Warning: {outcome.skipped_blocks} block(s) skipped", err=True)
    if not outcome.cursor_advanced:
        click.echo(f"No new blocks (height {outcome.chain_height})", err=True)


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show effective configuration."""
    cfg = load_config(ctx.obj["config_path"])
    net = cfg.network
    click.echo(f"Network:       {net.network} ({net.name})")
    click.echo(f"RPC URL:       {net.rpc_endpoint()}")
    click.echo(f"Explorer API:  {net.explorer_endpoint()}")
    click.echo(f"Explorer key:  {'***configured***' if net.explorer_api_key else '(not set)'}")
    click.echo(f"Origin API:    {net.origin_endpoint()}")
    click.echo(f"DID registry:  {net.did_registry_address}")
    click.echo(f"Poll interval: {cfg.poll_interval}s")
    click.echo(f"DB path:       {cfg.db_path}")
    click.echo(f"Triggers:      {len(cfg.triggers)}")
    for t in cfg.triggers:
        click.echo(f"  {t.name}: {t.kind.value}")


# ── Cursors ────────────────────────────────────────────


@cli.group()
def cursor():
    """Inspect or reset persisted trigger cursors."""
    pass


def _with_store(ctx: click.Context, fn: Callable[[SQLiteCursorStore], Awaitable[Any]]) -> Any:
    cfg = load_config(ctx.obj["config_path"])

    async def _run():
        store = SQLiteCursorStore(cfg.db_path)
        await store.initialize()
        try:
            return await fn(store)
        finally:
            await store.close()

    return asyncio.run(_run())


@cursor.command("show")
@click.argument("name")
@click.pass_context
def cursor_show(ctx: click.Context, name: str) -> None:
    """Print the cursor of one trigger instance."""
    state = _with_store(ctx, lambda store: store.load(name))
    _echo_json(state.to_dict())


@cursor.command("reset")
@click.argument("name")
@click.pass_context
def cursor_reset(ctx: click.Context, name: str) -> None:
    """Forget a trigger's cursor; its next poll starts from the lookback window."""
    _with_store(ctx, lambda store: store.reset(name))
    click.echo(f"Cursor reset: {name}")


@cursor.command("list")
@click.pass_context
def cursor_list(ctx: click.Context) -> None:
    """List trigger instances with a saved cursor."""
    names = _with_store(ctx, lambda store: store.list_instances())
    if not names:
        click.echo("No saved cursors.")
        return
    for name in names:
        click.echo(name)


# ── Chain queries ──────────────────────────────────────


@cli.command()
@click.argument("address")
@click.pass_context
def balance(ctx: click.Context, address: str) -> None:
    """EWT balance of an address."""
    _run_op(ctx, lambda c: accounts.get_balance(c, address))


@cli.command()
@click.argument("address")
@click.pass_context
def tokens(ctx: click.Context, address: str) -> None:
    """ERC-20 token balances of an address."""
    _run_op(ctx, lambda c: accounts.get_token_balances(c, address))


@cli.command()
@click.argument("address")
@click.option("--limit", type=int, default=10)
@click.option("--offset", type=int, default=0)
@click.pass_context
def history(ctx: click.Context, address: str, limit: int, offset: int) -> None:
    """Transaction history of an address (explorer)."""
    _run_op(ctx, lambda c: accounts.get_transaction_history(c, address, limit, offset))


@cli.command()
@click.argument("block_id")
@click.option("--txs", is_flag=True, help="Include full transactions")
@click.pass_context
def block(ctx: click.Context, block_id: str, txs: bool) -> None:
    """Block by number, hash or tag (latest/earliest/pending)."""
    _run_op(ctx, lambda c: network.get_block(c, block_id, txs))


@cli.command("network-status")
@click.pass_context
def network_status(ctx: click.Context) -> None:
    """Chain id, height, gas price and peers."""
    _run_op(ctx, network.get_network_status)


@cli.command("gas-price")
@click.pass_context
def gas_price(ctx: click.Context) -> None:
    """Current gas price with slow/standard/fast suggestions."""
    _run_op(ctx, network.get_gas_price)


@cli.command()
@click.pass_context
def validators(ctx: click.Context) -> None:
    """Validator set (explorer, or recent block miners)."""
    _run_op(ctx, network.get_validators)


@cli.command()
@click.argument("tx_hash")
@click.pass_context
def tx(ctx: click.Context, tx_hash: str) -> None:
    """Transaction details with receipt."""
    _run_op(ctx, lambda c: transactions.get_transaction(c, tx_hash))


@cli.command("tx-status")
@click.argument("tx_hash")
@click.pass_context
def tx_status(ctx: click.Context, tx_hash: str) -> None:
    """pending / confirmed / failed and confirmations."""
    _run_op(ctx, lambda c: transactions.get_transaction_status(c, tx_hash))


@cli.command("estimate-gas")
@click.argument("to")
@click.option("--value", default="0", help="Value in EWT")
@click.option("--data", default="", help="Call data")
@click.option("--from", "from_address", default="", help="Sender address")
@click.pass_context
def estimate_gas(ctx: click.Context, to: str, value: str, data: str, from_address: str) -> None:
    """Gas estimate and cost for a call."""
    _run_op(ctx, lambda c: transactions.estimate_gas(c, to, value, data, from_address))


@cli.command()
@click.option("--address", default="", help="Contract address")
@click.option("--from", "from_block", default="latest", help="First block (number or tag)")
@click.option("--to", "to_block", default="latest", help="Last block (number or tag)")
@click.option("--topic", "topics", multiple=True, help="Topic filter; repeat per position, 'null' for any")
@click.pass_context
def logs(
    ctx: click.Context, address: str, from_block: str, to_block: str, topics: tuple[str, ...],
) -> None:
    """Raw event logs."""
    _run_op(ctx, lambda c: events.get_logs(c, address, from_block, to_block, topics))


@cli.command("contract-events")
@click.argument("address")
@click.option("--signature", default="", help="Event signature hash (topic 0)")
@click.option("--from", "from_block", default="earliest", help="First block (number or tag)")
@click.option("--to", "to_block", default="latest", help="Last block (number or tag)")
@click.option("--topic", "topics", multiple=True, help="Indexed argument filter, in position order")
@click.pass_context
def contract_events(
    ctx: click.Context,
    address: str,
    signature: str,
    from_block: str,
    to_block: str,
    topics: tuple[str, ...],
) -> None:
    """Events emitted by one contract."""
    _run_op(ctx, lambda c: events.get_contract_events(
        c, address, signature, from_block, to_block, topics,
    ))


@cli.command("token-info")
@click.argument("address")
@click.pass_context
def token_info(ctx: click.Context, address: str) -> None:
    """ERC-20 name, symbol, decimals and supply."""
    _run_op(ctx, lambda c: tokens_ops.get_token_info(c, address))


@cli.command("token-holders")
@click.argument("address")
@click.option("--limit", type=int, default=10)
@click.pass_context
def token_holders(ctx: click.Context, address: str, limit: int) -> None:
    """Largest holders of an ERC-20 token."""
    _run_op(ctx, lambda c: tokens_ops.get_token_holders(c, address, limit))


@cli.command()
@click.argument("address_or_did")
@click.pass_context
def did(ctx: click.Context, address_or_did: str) -> None:
    """Resolve a DID document from the registry."""
    _run_op(ctx, lambda c: dids.get_did_document(c, address_or_did))


@cli.command("did-claims")
@click.argument("address_or_did")
@click.pass_context
def did_claims(ctx: click.Context, address_or_did: str) -> None:
    """Attribute claims recorded for an identity."""
    _run_op(ctx, lambda c: dids.get_did_claims(c, address_or_did))


@cli.command("verify-claim")
@click.argument("credential_json")
@click.pass_context
def verify_claim(ctx: click.Context, credential_json: str) -> None:
    """Structural check of a verifiable credential."""
    _run_op(ctx, lambda c: dids.verify_claim(c, credential_json))


@cli.command()
@click.argument("certificate_id")
@click.option("--history", is_flag=True, help="Show lifecycle events instead")
@click.pass_context
def certificate(ctx: click.Context, certificate_id: str, history: bool) -> None:
    """Origin certificate lookup."""
    if history:
        _run_op(ctx, lambda c: origin.get_certificate_history(c, certificate_id))
    else:
        _run_op(ctx, lambda c: origin.get_certificate(c, certificate_id))


@cli.command()
@click.argument("address")
@click.option("--include-retired", is_flag=True)
@click.pass_context
def certificates(ctx: click.Context, address: str, include_retired: bool) -> None:
    """Origin certificates owned by an address."""
    _run_op(ctx, lambda c: origin.get_user_certificates(c, address, include_retired))


@cli.command()
@click.argument("asset_id")
@click.option("--history", is_flag=True, help="Show lifecycle events instead")
@click.pass_context
def asset(ctx: click.Context, asset_id: str, history: bool) -> None:
    """Origin asset (device) lookup."""
    if history:
        _run_op(ctx, lambda c: assets.get_asset_history(c, asset_id))
    else:
        _run_op(ctx, lambda c: assets.get_asset_info(c, asset_id))


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """RPC connectivity and chain id check."""
    _run_op(ctx, utility.get_api_health)


# ── Offline helpers ────────────────────────────────────


@cli.command()
@click.argument("amount")
@click.argument("from_unit", type=click.Choice(list(utility.UNITS)))
@click.argument("to_unit", type=click.Choice(list(utility.UNITS)))
def convert(amount: str, from_unit: str, to_unit: str) -> None:
    """Convert between wei, gwei and ewt."""
    try:
        _echo_json(utility.convert_units(amount, from_unit, to_unit))
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@cli.command("encode-did")
@click.argument("address")
@click.pass_context
def encode_did(ctx: click.Context, address: str) -> None:
    """did:ethr identifier for an address on the configured network."""
    cfg = load_config(ctx.obj["config_path"])
    try:
        _echo_json(utility.encode_did(address, cfg.network.network))
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
