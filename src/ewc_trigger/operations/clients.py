"""Client bundle shared by the operation catalogue."""

from __future__ import annotations

from dataclasses import dataclass

from ewc_trigger.chain.transport import ExplorerClient, JsonRpcClient, OriginClient
from ewc_trigger.models.config import NetworkSettings


@dataclass
class Clients:
    """Remote clients for one network, built from NetworkSettings."""

    rpc: JsonRpcClient
    explorer: ExplorerClient
    origin: OriginClient
    network: NetworkSettings

    @classmethod
    def from_settings(cls, network: NetworkSettings) -> Clients:
        return cls(
            rpc=JsonRpcClient(network.rpc_endpoint(), timeout=network.timeout),
            explorer=ExplorerClient(
                network.explorer_endpoint(),
                api_key=network.explorer_api_key or None,
                timeout=network.timeout,
            ),
            origin=OriginClient(network.origin_endpoint(), timeout=network.timeout),
            network=network,
        )

    async def close(self) -> None:
        await self.rpc.close()
        await self.explorer.close()
        await self.origin.close()

    async def __aenter__(self) -> Clients:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
