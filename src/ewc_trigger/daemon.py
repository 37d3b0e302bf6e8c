"""Main daemon loop - polls every configured trigger on a fixed interval."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from typing import Any, Callable

from ewc_trigger.chain.transport import ExplorerClient, JsonRpcClient
from ewc_trigger.models.config import PluginConfig
from ewc_trigger.storage.sqlite import SQLiteCursorStore
from ewc_trigger.triggers.decoders import build_decoders
from ewc_trigger.triggers.orchestrator import PollError, PollOrchestrator, TriggerRunner

log = logging.getLogger(__name__)

Sink = Callable[[str, dict[str, Any]], None]


def stdout_sink(instance_id: str, record: dict[str, Any]) -> None:
    """Write one event as a JSON line tagged with its trigger instance."""
    sys.stdout.write(json.dumps({"trigger": instance_id, **record}) + "\n")
    sys.stdout.flush()


class TriggerDaemon:
    """Runs every [[triggers]] entry once per poll interval.

    Each trigger keeps its own cursor in the SQLite store. A failing
    trigger is skipped for the cycle while the others still run; the loop
    then waits ``error_backoff`` instead of ``poll_interval``.
    """

    def __init__(self, cfg: PluginConfig, sink: Sink = stdout_sink) -> None:
        self._cfg = cfg
        self._sink = sink
        self._running = False
        self.failed: list[str] = []  # instance ids that failed in the last cycle

        net = cfg.network
        self.rpc = JsonRpcClient(net.rpc_endpoint(), timeout=net.timeout)
        self.explorer = ExplorerClient(
            net.explorer_endpoint(), api_key=net.explorer_api_key or None, timeout=net.timeout,
        )
        self.store = SQLiteCursorStore(cfg.db_path)
        self.orchestrator = PollOrchestrator(
            self.rpc, build_decoders(self.rpc, self.explorer, net),
        )
        self.runners = [
            TriggerRunner(self.orchestrator, self.store, t.name, t.kind, t.filters)
            for t in cfg.triggers
        ]

    async def start(self) -> None:
        """Initialize the store and run the main loop."""
        log.info("Starting ewc_trigger daemon")
        log.info("  Network:  %s", self._cfg.network.name)
        log.info("  RPC:      %s", self._cfg.network.rpc_endpoint())
        log.info("  Triggers: %s", ", ".join(r.instance_id for r in self.runners) or "(none)")

        await self.store.initialize()
        self._running = True
        try:
            await self._main_loop()
        finally:
            await self.rpc.close()
            await self.explorer.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._running = False

    async def poll_all(self) -> int:
        """Run every trigger once; returns the number of events emitted.

        A failing trigger is logged and recorded in ``failed`` and does not
        stop the triggers after it.
        """
        emitted = 0
        self.failed = []
        for runner in self.runners:
            try:
                records = await runner.run_once()
            except PollError as exc:
                log.error("Trigger %s failed: %s", runner.instance_id, exc, exc_info=True)
                self.failed.append(runner.instance_id)
                continue
            for record in records or ():
                self._sink(runner.instance_id, record)
                emitted += 1
        return emitted

    async def _main_loop(self) -> None:
        while self._running:
            try:
                emitted = await self.poll_all()
                if emitted:
                    log.info("Emitted %d event(s)", emitted)
                if self.failed:
                    log.warning(
                        "%d trigger(s) failed, backing off %ds",
                        len(self.failed), self._cfg.error_backoff,
                    )
                    await asyncio.sleep(self._cfg.error_backoff)
                else:
                    await asyncio.sleep(self._cfg.poll_interval)
            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            except Exception as exc:
                log.error("Main loop error: %s", exc, exc_info=True)
                await asyncio.sleep(self._cfg.error_backoff)


async def run_daemon(cfg: PluginConfig) -> None:
    """Entry point for running the daemon."""
    daemon = TriggerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
