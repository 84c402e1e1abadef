# MIT License
# Copyright (c) 2025 Hashborn

import hashlib
import os
from typing import Optional

from ecdsa import SigningKey, VerifyingKey, SECP256k1  # type: ignore
from ecdsa.util import sigdecode_string, sigencode_string_canonize  # type: ignore

SIGNATURE_LENGTH = 65
RECOVERY_ID_OFFSET = 27


def generate_private_key() -> bytes:
    """Generates a random 32-byte private key."""
    return os.urandom(32)


def public_key_from_private(priv_bytes: bytes) -> bytes:
    """Returns compressed 33-byte public key from private key."""
    sk = SigningKey.from_string(priv_bytes, curve=SECP256k1)
    vk = sk.get_verifying_key()
    return vk.to_string("compressed")


def sign(message_hash: bytes, priv_bytes: bytes) -> bytes:
    """Signs a message hash with private key. Returns 64-byte (r,s) signature with low s."""
    sk = SigningKey.from_string(priv_bytes, curve=SECP256k1)
    return sk.sign_digest_deterministic(
        message_hash, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize
    )


def sign_recoverable(message_hash: bytes, priv_bytes: bytes) -> bytes:
    """
    Signs a 32-byte hash and returns the 65-byte blob r || s || v.

    v is 27 or 28: 27 when the ephemeral point R has an even y coordinate.
    """
    rs = sign(message_hash, priv_bytes)
    own_pub = public_key_from_private(priv_bytes)
    candidates = VerifyingKey.from_public_key_recovery_with_digest(
        rs, message_hash, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
    )
    for recovery_id, vk in enumerate(candidates):
        if vk.to_string("compressed") == own_pub:
            return rs + bytes([RECOVERY_ID_OFFSET + recovery_id])
    # Unreachable for a signature we just produced
    raise ValueError("could not determine recovery id")


def recover_public_key(message_hash: bytes, signature: bytes) -> Optional[bytes]:
    """
    Recovers the compressed public key that produced a 65-byte signature.

    Accepts v in {0, 1, 27, 28}. Returns None for malformed or unrecoverable blobs.
    """
    if len(signature) != SIGNATURE_LENGTH or len(message_hash) != 32:
        return None
    v = signature[64]
    recovery_id = v - RECOVERY_ID_OFFSET if v >= RECOVERY_ID_OFFSET else v
    if recovery_id not in (0, 1):
        return None
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    if not (0 < r < SECP256k1.order and 0 < s < SECP256k1.order):
        return None
    try:
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            signature[:64], message_hash, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
        )
        if recovery_id >= len(candidates):
            return None
        return candidates[recovery_id].to_string("compressed")
    except Exception:
        return None


def verify(message_hash: bytes, signature: bytes, pub_bytes: bytes) -> bool:
    """Verifies ECDSA signature (64-byte r||s, or 65-byte blob with trailing v)."""
    try:
        vk = VerifyingKey.from_string(pub_bytes, curve=SECP256k1)
        return vk.verify_digest(signature[:64], message_hash, sigdecode=sigdecode_string)
    except Exception:
        return False
