# MIT License
# Copyright (c) 2025 Hashborn

from typing import Optional, Tuple

import bech32  # type: ignore

from .hash import sha256

DEFAULT_PREFIX = "acct"
ADDRESS_BYTES = 20


def encode_address(h20: bytes, prefix: str = DEFAULT_PREFIX) -> str:
    """Encodes a 20-byte payload as a Bech32 address."""
    if len(h20) != ADDRESS_BYTES:
        raise ValueError(f"address payload must be {ADDRESS_BYTES} bytes, got {len(h20)}")

    five_bit_r = bech32.convertbits(h20, 8, 5)
    if five_bit_r is None:
        raise ValueError("Error converting to bech32 words")

    return bech32.bech32_encode(prefix, five_bit_r)


def address_from_pubkey(pub_bytes: bytes, prefix: str = DEFAULT_PREFIX) -> str:
    """Creates Bech32 address from the last 20 bytes of sha256(pubkey)."""
    return encode_address(sha256(pub_bytes)[-ADDRESS_BYTES:], prefix)


def system_address(index: int, prefix: str = DEFAULT_PREFIX) -> str:
    """Reserved address whose payload is the big-endian index (e.g. 0x8001)."""
    return encode_address(index.to_bytes(ADDRESS_BYTES, "big"), prefix)


def decode_address(addr: str) -> Tuple[str, bytes]:
    """Decodes Bech32 address to (prefix, h20_bytes)."""
    hrp, data = bech32.bech32_decode(addr)
    if hrp is None or data is None:
        raise ValueError("Invalid bech32 address")

    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None:
        raise ValueError("Error converting from bech32 words")
    if len(decoded) != ADDRESS_BYTES:
        raise ValueError(f"Invalid address length: {len(decoded)}")

    return hrp, bytes(decoded)


def same_address(a: str, b: str) -> bool:
    """True when both strings decode to the same prefix and payload. Bech32 is case-insensitive."""
    try:
        return decode_address(a) == decode_address(b)
    except ValueError:
        return False


def is_valid_address(addr: str, expected_prefix: Optional[str] = None) -> bool:
    try:
        hrp, _ = decode_address(addr)
        if expected_prefix and hrp != expected_prefix:
            return False
        return True
    except ValueError:
        return False
