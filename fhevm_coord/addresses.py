# fhevm_coord/addresses.py
"""Account address and handle helpers."""

from __future__ import annotations

from typing import Any, Union

from web3 import Web3

from .errors import InvalidAddressError, ProtocolError


def is_address(value: Any) -> bool:
    """Check for a 20-byte hex account identifier (0x-prefixed)."""
    return (
        isinstance(value, str)
        and value.startswith(("0x", "0X"))
        and Web3.is_address(value)
    )


def normalize_address(value: Any, role: str = "address") -> str:
    """
    Validate and checksum an address.

    Raises:
        InvalidAddressError: If value is not a well-formed address
    """
    if not is_address(value):
        raise InvalidAddressError(value, role)
    return Web3.to_checksum_address(value)


def handle_to_hex(handle: Union[str, bytes]) -> str:
    """Canonical 0x-prefixed lower-case hex form of a ciphertext handle."""
    if isinstance(handle, (bytes, bytearray)):
        raw = bytes(handle)
    elif isinstance(handle, str):
        text = handle[2:] if handle.startswith(("0x", "0X")) else handle
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ProtocolError(f"Handle is not hex: {handle!r}") from None
    else:
        raise ProtocolError(f"Unsupported handle type: {type(handle).__name__}")

    if len(raw) != 32:
        raise ProtocolError(f"Handle must be 32 bytes, got {len(raw)}")
    return "0x" + raw.hex()
