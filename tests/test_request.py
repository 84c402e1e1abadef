import pytest
from pydantic import ValidationError

from acctkit.protocol.crypto.addresses import address_from_pubkey
from acctkit.protocol.crypto.keys import (
    generate_private_key,
    public_key_from_private,
    recover_public_key,
    verify,
)
from acctkit.protocol.types.request import PackedRequest, pack_uint128_pair, unpack_uint128_pair

SENDER = address_from_pubkey(public_key_from_private(b"\x01" * 32))
DEST = address_from_pubkey(public_key_from_private(b"\x02" * 32))


def _request(**fields):
    params = dict(
        sender=SENDER,
        nonce=3,
        destination=DEST,
        value=7,
        call_data="0xDEADbeef",
        verification_gas_limit=150_000,
        call_gas_limit=400_000,
        max_priority_fee_per_gas=2,
        max_fee_per_gas=30,
    )
    params.update(fields)
    return PackedRequest(**params)


def test_packed_gas_fields_layout():
    req = _request()

    # High half carries verification / priority, low half carries call / max
    assert req.account_gas_limits == (150_000 << 128) | 400_000
    assert req.gas_fees == (2 << 128) | 30
    assert unpack_uint128_pair(req.account_gas_limits) == (150_000, 400_000)
    assert unpack_uint128_pair(req.gas_fees) == (2, 30)


def test_pack_rejects_values_over_128_bits():
    with pytest.raises(ValueError):
        pack_uint128_pair(2**128, 0)
    with pytest.raises(ValueError):
        pack_uint128_pair(0, -1)
    with pytest.raises(ValidationError):
        _request(call_gas_limit=2**128)


def test_hex_fields_are_normalized():
    req = _request(call_data=b"\xde\xad\xbe\xef")
    assert req.call_data == "deadbeef"
    assert _request().call_data == "deadbeef"

    with pytest.raises(ValidationError):
        _request(call_data="0xnothex")


def test_non_hex_field_types_are_validation_errors():
    with pytest.raises(ValidationError):
        _request(call_data=5)
    with pytest.raises(ValidationError):
        _request(signature=["ab"])
    with pytest.raises(ValidationError):
        PackedRequest.model_validate_json('{"sender": "a", "nonce": 0, "destination": "b", "init_data": 7}')


def test_request_is_immutable():
    req = _request()
    with pytest.raises(ValidationError):
        req.nonce = 4


def test_hash_is_deterministic_and_excludes_signature():
    priv = generate_private_key()
    req = _request()
    signed = req.signed(priv)

    assert req.hash() == _request().hash()
    assert signed.hash() == req.hash()
    assert signed.signature != ""


def test_hash_covers_every_field():
    base = _request().hash()
    changes = [
        {"sender": DEST},
        {"nonce": 4},
        {"destination": SENDER},
        {"value": 8},
        {"call_data": "deadbeee"},
        {"verification_gas_limit": 150_001},
        {"call_gas_limit": 400_001},
        {"max_priority_fee_per_gas": 3},
        {"max_fee_per_gas": 31},
        {"init_data": "00"},
    ]
    for change in changes:
        assert _request(**change).hash() != base, change


def test_signature_layout_and_recovery():
    priv = generate_private_key()
    pub = public_key_from_private(priv)
    signed = _request().signed(priv)
    sig = signed.signature_bytes

    # r (32) || s (32) || v (1)
    assert len(sig) == 65
    assert sig[64] in (27, 28)
    assert verify(signed.hash_bytes, sig, pub)
    assert recover_public_key(signed.hash_bytes, sig) == pub

    # Raw recovery ids are accepted too
    raw = sig[:64] + bytes([sig[64] - 27])
    assert recover_public_key(signed.hash_bytes, raw) == pub


def test_recovery_rejects_malformed_signatures():
    priv = generate_private_key()
    signed = _request().signed(priv)
    digest = signed.hash_bytes
    sig = signed.signature_bytes

    assert recover_public_key(digest, sig[:64]) is None
    assert recover_public_key(digest, sig[:64] + b"\x05") is None
    assert recover_public_key(digest, b"\x00" * 65) is None


def test_json_round_trip_preserves_hash():
    signed = _request().signed(generate_private_key())
    restored = PackedRequest.model_validate_json(signed.model_dump_json())
    assert restored == signed
    assert restored.hash() == signed.hash()
