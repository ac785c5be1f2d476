"""Address and word helpers shared by the ledger and its contracts."""

from __future__ import annotations

from eth_utils import is_address, keccak, to_bytes, to_checksum_address

from .errors import ValidationError


def normalise_address(value: str) -> str:
    """Return the checksummed form of ``value`` or raise :class:`ValidationError`."""

    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(f"Not an address: {value!r}")
    return to_checksum_address(value)


def derive_address(*parts: object) -> str:
    """Deterministic address from arbitrary labels, e.g. deployer and nonce."""

    seed = ":".join(str(p) for p in parts)
    return to_checksum_address(keccak(text=seed)[-20:])


def to_bytes32(value: bytes | str | int) -> bytes:
    """Left-pad ``value`` into a 32 byte word.

    Accepts raw bytes, hex strings (``"0x0"`` is the zero word) and integers.
    """

    if isinstance(value, int):
        raw = value.to_bytes(32, "big")
    elif isinstance(value, str):
        raw = to_bytes(hexstr=value)
    else:
        raw = bytes(value)
    if len(raw) > 32:
        raise ValidationError(f"Value does not fit into 32 bytes: {value!r}")
    return raw.rjust(32, b"\x00")


__all__ = ["normalise_address", "derive_address", "to_bytes32"]
