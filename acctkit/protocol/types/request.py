# MIT License
# Copyright (c) 2025 Hashborn

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config.params import REQUEST_HASH_DOMAIN, UINT128_MAX
from ..crypto.hash import length_prefixed, sha256, sha256_hex, uint_word
from ..crypto.keys import sign_recoverable


def pack_uint128_pair(high: int, low: int) -> int:
    """Packs two uint128 values into one uint256 word (high << 128 | low)."""
    for v in (high, low):
        if v < 0 or v > UINT128_MAX:
            raise ValueError(f"{v} does not fit in 128 bits")
    return (high << 128) | low


def unpack_uint128_pair(word: int) -> Tuple[int, int]:
    """Inverse of pack_uint128_pair: returns (high, low)."""
    if word < 0 or word >= 2**256:
        raise ValueError(f"{word} does not fit in 256 bits")
    return word >> 128, word & UINT128_MAX


def _normalize_hex(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError("expected hex string or bytes")
    v = value.strip()
    if v[:2] in ("0x", "0X"):
        v = v[2:]
    bytes.fromhex(v)  # raises ValueError on bad hex
    return v.lower()


class PackedRequest(BaseModel):
    """
    Signed request consumed by the account engine.

    Gas limits and fee rates travel as uint128 halves of two packed words:
    account_gas_limits = verification_gas_limit << 128 | call_gas_limit
    gas_fees           = max_priority_fee_per_gas << 128 | max_fee_per_gas
    """
    model_config = ConfigDict(frozen=True)

    sender: str
    nonce: int = Field(ge=0)
    destination: str
    value: int = Field(default=0, ge=0)
    call_data: str = ""              # hex
    verification_gas_limit: int = Field(default=0, ge=0, le=UINT128_MAX)
    call_gas_limit: int = Field(default=0, ge=0, le=UINT128_MAX)
    max_priority_fee_per_gas: int = Field(default=0, ge=0, le=UINT128_MAX)
    max_fee_per_gas: int = Field(default=0, ge=0, le=UINT128_MAX)
    init_data: str = ""              # hex, carried but unused by the engine
    signature: str = ""              # hex r || s || v

    @field_validator("call_data", "init_data", "signature", mode="before")
    @classmethod
    def _hex_field(cls, v):
        return _normalize_hex(v)

    @property
    def account_gas_limits(self) -> int:
        return pack_uint128_pair(self.verification_gas_limit, self.call_gas_limit)

    @property
    def gas_fees(self) -> int:
        return pack_uint128_pair(self.max_priority_fee_per_gas, self.max_fee_per_gas)

    @property
    def call_data_bytes(self) -> bytes:
        return bytes.fromhex(self.call_data)

    @property
    def signature_bytes(self) -> bytes:
        return bytes.fromhex(self.signature)

    @property
    def total_gas_limit(self) -> int:
        return self.verification_gas_limit + self.call_gas_limit

    def encode_for_hash(self) -> bytes:
        """Deterministic encoding of every field except the signature."""
        return b"".join([
            REQUEST_HASH_DOMAIN,
            length_prefixed(self.sender.encode("utf-8")),
            uint_word(self.nonce),
            length_prefixed(self.destination.encode("utf-8")),
            uint_word(self.value),
            length_prefixed(self.call_data_bytes),
            uint_word(self.account_gas_limits),
            uint_word(self.gas_fees),
            length_prefixed(bytes.fromhex(self.init_data)),
        ])

    def hash(self) -> str:
        return sha256_hex(self.encode_for_hash())

    @property
    def hash_bytes(self) -> bytes:
        return sha256(self.encode_for_hash())

    def signed(self, priv_key_bytes: bytes) -> "PackedRequest":
        """Returns a copy carrying a 65-byte signature over the canonical hash."""
        sig = sign_recoverable(self.hash_bytes, priv_key_bytes)
        return self.model_copy(update={"signature": sig.hex()})
