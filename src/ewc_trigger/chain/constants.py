"""Energy Web Chain network constants, default contracts and event topics."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NetworkInfo:
    """Static description of a known Energy Web network."""

    key: str
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    explorer_api_url: str
    symbol: str
    decimals: int = 18
    did_prefix: str = "did:ethr:ewc"


MAINNET = NetworkInfo(
    key="mainnet",
    name="Energy Web Chain",
    chain_id=246,
    rpc_url="https://rpc.energyweb.org",
    explorer_url="https://explorer.energyweb.org",
    explorer_api_url="https://explorer.energyweb.org/api",
    symbol="EWT",
    did_prefix="did:ethr:ewc",
)

VOLTA = NetworkInfo(
    key="volta",
    name="Volta Testnet",
    chain_id=73799,
    rpc_url="https://volta-rpc.energyweb.org",
    explorer_url="https://volta-explorer.energyweb.org",
    explorer_api_url="https://volta-explorer.energyweb.org/api",
    symbol="VT",
    did_prefix="did:ethr:volta",
)

NETWORKS: dict[str, NetworkInfo] = {
    "mainnet": MAINNET,
    "volta": VOLTA,
}


def network_info(network: str) -> NetworkInfo:
    """Resolve a network key; unknown keys (including "custom") map to mainnet."""
    return NETWORKS.get(network, MAINNET)


# Same deployment address on both networks
DID_REGISTRY_ADDRESS = "0xc15d5a57a8eb0e1dcbe5d88b8f9a82017e5cc4af"

ORIGIN_API_URL = {
    "mainnet": "https://origin.energyweb.org/api",
    "volta": "https://origin-volta.energyweb.org/api",
}

# ── Event topics (must match the deployed contracts bit for bit) ──

# The certificate contract emits its event name right-padded with ASCII zeros
CERTIFICATE_ISSUED_TOPIC = "0x" + "CertificateIssued".ljust(64, "0")[:64]
# ERC-1155 TransferSingle(operator, from, to, id, value)
CERTIFICATE_TRANSFER_TOPIC = (
    "0xc3d58168c5ae7397731d063d5bbf3d657854427343f4c083240f7aacaa2d0f62"
)
# DIDOwnerChanged(address indexed identity, address owner, uint256 previousChange)
DID_OWNER_CHANGED_TOPIC = (
    "0x38a5a6e68f30ed1ab45860a4afb34bcb2fc00f22ca462d249b8a8d40cda6f7a3"
)
# DIDAttributeChanged(address indexed identity, bytes32 name, bytes value, ...)
DID_ATTRIBUTE_CHANGED_TOPIC = (
    "0x18ab6b2ae3d64571f0c9f8c5e2b72f3a23bfa3773b1c3c4e5d3e2fd0e3e1c4b2"
)
# Explorer-side topic name for asset registrations
ASSET_REGISTERED_TOPIC_NAME = "AssetRegistered"

# ── DID registry function selectors ──

IDENTITY_OWNER_SELECTOR = "0x8733d4e8"  # identityOwner(address)
CHANGED_SELECTOR = "0xf96d0f9f"  # changed(address)

# keccak256 of DIDAttributeChanged as the registry emits it; claim lookups
# filter on this one rather than the trigger topic above
DID_ATTRIBUTE_CLAIM_TOPIC = (
    "0x18ab6b2ae3d64571f55c37cad9c99caa4b7ac4a0b9b762b91aff50a08b7cf21f"
)

# ── ERC-20 read selectors ──

ERC20_SELECTORS = {
    "name": "0x06fdde03",
    "symbol": "0x95d89b41",
    "decimals": "0x313ce567",
    "totalSupply": "0x18160ddd",
    "owner": "0x8da5cb5b",
}

# ── Units ──

WEI_PER_GWEI = 10**9
WEI_PER_EWT = 10**18

BLOCK_TAGS = ("latest", "earliest", "pending")

# ── Polling ──

DEDUP_WINDOW = 1000  # trailing tx hashes kept in the cursor
LARGE_TRANSFER_BATCH_SIZE = 10  # blocks fetched per batch

ERROR_MESSAGES = {
    "INVALID_ADDRESS": "Invalid Ethereum address format",
    "INVALID_TX_HASH": "Invalid transaction hash format",
    "INVALID_DID_FORMAT": "Invalid DID format",
    "RPC_ERROR": "RPC request failed",
    "BLOCK_NOT_FOUND": "Block not found",
    "TRANSACTION_NOT_FOUND": "Transaction not found",
    "CERTIFICATE_NOT_FOUND": "Certificate not found",
    "ASSET_NOT_FOUND": "Asset not found",
    "INVALID_CREDENTIAL": "Invalid credential JSON",
}
