# MIT License
# Copyright (c) 2025 Hashborn

import hashlib


def sha256(data: bytes) -> bytes:
    """Returns SHA256 hash of bytes."""
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """Returns SHA256 hash of bytes as hex string."""
    return sha256(data).hex()


def uint_word(value: int) -> bytes:
    """Encodes a non-negative integer as a 32-byte big-endian word."""
    if value < 0 or value >= 2**256:
        raise ValueError(f"value {value} does not fit in 256 bits")
    return value.to_bytes(32, "big")


def length_prefixed(data: bytes) -> bytes:
    """32-byte length word followed by the raw bytes."""
    return uint_word(len(data)) + data
