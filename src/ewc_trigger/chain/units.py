"""Pure helpers: hex/int conversion, Wei/Gwei/EWT units, address and DID formats."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from ewc_trigger.chain.constants import (
    BLOCK_TAGS,
    ERROR_MESSAGES,
    WEI_PER_EWT,
    WEI_PER_GWEI,
    network_info,
)

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
_DID_RE = re.compile(r"^did:ethr:(ewc|volta):0x[a-fA-F0-9]{40}$")


@dataclass(frozen=True)
class UnitConversion:
    """A Wei amount expressed in all supported units (decimal strings)."""

    wei: str
    gwei: str
    ewt: str


@dataclass(frozen=True)
class EncodedDID:
    did: str
    method: str
    identifier: str


# ── Validation ─────────────────────────────────────────


def is_valid_address(address: str | None) -> bool:
    return bool(address) and _ADDRESS_RE.match(address) is not None


def is_valid_tx_hash(tx_hash: str | None) -> bool:
    return bool(tx_hash) and _TX_HASH_RE.match(tx_hash) is not None


def is_valid_did(did: str | None) -> bool:
    return bool(did) and _DID_RE.match(did) is not None


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality; None never matches."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


# ── Hex ────────────────────────────────────────────────


def hex_to_int(value: str | int | None) -> int:
    """Parse a 0x-prefixed quantity. Integers pass through; empty values are 0."""
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    if value in ("", "0x"):
        return 0
    return int(value, 16)


def int_to_hex(value: int) -> str:
    return hex(value)


def to_block_tag(block: int | str) -> str:
    """Encode a block number for JSON-RPC.

    Integers and decimal strings become 0x-hex; hex strings and the
    latest/earliest/pending tags pass through unchanged.
    """
    if isinstance(block, int):
        return int_to_hex(block)
    if block in BLOCK_TAGS or block.startswith("0x"):
        return block
    return int_to_hex(int(block))


def pad_hex(value: str, length: int) -> str:
    """Left-pad a hex string to ``length`` bytes."""
    clean = value[2:] if value.startswith("0x") else value
    return "0x" + clean.rjust(length * 2, "0")


def topic_to_address(topic: str | None) -> str:
    """Extract the address held in the low 20 bytes of a 32-byte topic."""
    if not topic:
        return "unknown"
    return "0x" + topic[-40:]


# ── Units ──────────────────────────────────────────────


def _format_fraction(value: int, divisor: int, places: int) -> str:
    whole, remainder = divmod(value, divisor)
    if remainder == 0:
        return str(whole)
    decimals = str(remainder).rjust(places, "0").rstrip("0")
    return f"{whole}.{decimals}"


def format_units(value: int, decimals: int) -> str:
    """Format a base-unit integer with ``decimals`` places, trailing zeros trimmed."""
    return _format_fraction(value, 10**decimals, decimals)


def wei_to_units(wei: int | str) -> UnitConversion:
    value = int(wei)
    return UnitConversion(
        wei=str(value),
        gwei=str(value // WEI_PER_GWEI),
        ewt=_format_fraction(value, WEI_PER_EWT, 18),
    )


def _decimal_to_base(amount: str, places: int) -> int:
    try:
        # Normalizes floats such as 1e+21 to plain notation
        amount = format(Decimal(str(amount).strip()), "f")
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}") from None
    if amount.startswith("-"):
        raise ValueError(f"Negative amount: {amount}")
    whole, _, decimals = amount.partition(".")
    decimals = decimals.ljust(places, "0")[:places]
    return int(whole or "0") * 10**places + int(decimals or "0")


def ewt_to_wei(ewt: str | int | float) -> int:
    """Convert an EWT amount to Wei; extra decimals beyond 18 are truncated."""
    return _decimal_to_base(str(ewt), 18)


def gwei_to_wei(gwei: str | int | float) -> int:
    return _decimal_to_base(str(gwei), 9)


def units_to_wei(amount: str, unit: str) -> int:
    if unit == "wei":
        return int(amount)
    if unit == "gwei":
        return gwei_to_wei(amount)
    if unit == "ewt":
        return ewt_to_wei(amount)
    raise ValueError(f"Unknown unit: {unit}")


# ── DIDs ───────────────────────────────────────────────


def did_for(identity: str, network: str = "mainnet") -> str:
    """Build the did:ethr identifier for an address as emitted by triggers."""
    return f"{network_info(network).did_prefix}:{identity}"


def encode_did(address: str, network: str = "mainnet") -> EncodedDID:
    if not is_valid_address(address):
        raise ValueError(ERROR_MESSAGES["INVALID_ADDRESS"])
    prefix = network_info(network).did_prefix
    return EncodedDID(
        did=f"{prefix}:{address.lower()}",
        method=":".join(prefix.split(":")[:2]),
        identifier=address.lower(),
    )


def decode_did(did: str) -> tuple[str, str]:
    """Split a did:ethr string into (network, address)."""
    if not is_valid_did(did):
        raise ValueError(ERROR_MESSAGES["INVALID_DID_FORMAT"])
    parts = did.split(":")
    return parts[2], parts[3]


# ── Display ────────────────────────────────────────────


def format_timestamp(seconds: int) -> str:
    """Format a unix timestamp (seconds) as ISO 8601 UTC."""
    return (
        datetime.fromtimestamp(seconds, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
