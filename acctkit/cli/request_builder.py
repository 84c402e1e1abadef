# MIT License
# Copyright (c) 2025 Hashborn

"""
Builds and signs PackedRequest objects for a smart account.

Key selection by network:
- an explicitly injected key always wins
- local networks fall back to the network's development key
- other networks read ACCTKIT_SIGNER_KEY from the environment
"""
import logging
import os
from typing import Callable, Mapping, Optional, Union

from ..blockchain.core.nonce_holder import NonceHolder
from ..protocol.config.params import CURRENT_NETWORK, NetworkConfig
from ..protocol.crypto.addresses import address_from_pubkey
from ..protocol.crypto.keys import public_key_from_private
from ..protocol.types.request import PackedRequest

logger = logging.getLogger(__name__)

SIGNER_KEY_ENV = "ACCTKIT_SIGNER_KEY"

NonceSource = Union[NonceHolder, Callable[[str], int]]


def parse_private_key(key_hex: str) -> bytes:
    v = key_hex.strip()
    if v[:2] in ("0x", "0X"):
        v = v[2:]
    try:
        priv = bytes.fromhex(v)
    except ValueError:
        raise ValueError("Invalid hex string for private key")
    if len(priv) != 32:
        raise ValueError("Invalid private key length")
    return priv


class RequestBuilder:
    def __init__(self,
                 network: Optional[NetworkConfig] = None,
                 signer_key: Optional[str] = None,
                 nonce_source: Optional[NonceSource] = None,
                 env: Optional[Mapping[str, str]] = None):
        self.network = network or CURRENT_NETWORK
        self.signer_key = signer_key
        self.nonce_source = nonce_source
        self.env = os.environ if env is None else env

    def resolve_signer_key(self) -> bytes:
        if self.signer_key:
            return parse_private_key(self.signer_key)
        if self.network.is_local:
            if not self.network.dev_signer_key:
                raise ValueError(f"Local network {self.network.network_id} has no development key")
            logger.debug(f"Using development key for {self.network.network_id}")
            return parse_private_key(self.network.dev_signer_key)
        key_hex = self.env.get(SIGNER_KEY_ENV)
        if not key_hex:
            raise ValueError(f"No signing key for {self.network.network_id}: set {SIGNER_KEY_ENV}")
        return parse_private_key(key_hex)

    def signer_address(self) -> str:
        pub = public_key_from_private(self.resolve_signer_key())
        return address_from_pubkey(pub, prefix=self.network.bech32_prefix)

    def resolve_nonce(self, sender: str) -> int:
        if self.nonce_source is None:
            raise ValueError("nonce not given and no nonce source configured")
        if isinstance(self.nonce_source, NonceHolder):
            return self.nonce_source.get_min_nonce(sender)
        return int(self.nonce_source(sender))

    def build_unsigned(self,
                       sender: str,
                       destination: str,
                       call_data: bytes = b"",
                       nonce: Optional[int] = None,
                       value: int = 0,
                       verification_gas_limit: Optional[int] = None,
                       call_gas_limit: Optional[int] = None,
                       max_priority_fee_per_gas: Optional[int] = None,
                       max_fee_per_gas: Optional[int] = None,
                       init_data: bytes = b"") -> PackedRequest:
        net = self.network
        if nonce is None:
            nonce = self.resolve_nonce(sender)
        return PackedRequest(
            sender=sender,
            nonce=nonce,
            destination=destination,
            value=value,
            call_data=call_data,
            verification_gas_limit=net.default_verification_gas_limit if verification_gas_limit is None else verification_gas_limit,
            call_gas_limit=net.default_call_gas_limit if call_gas_limit is None else call_gas_limit,
            max_priority_fee_per_gas=net.default_max_priority_fee_per_gas if max_priority_fee_per_gas is None else max_priority_fee_per_gas,
            max_fee_per_gas=net.default_max_fee_per_gas if max_fee_per_gas is None else max_fee_per_gas,
            init_data=init_data,
        )

    def sign(self, request: PackedRequest) -> PackedRequest:
        signed = request.signed(self.resolve_signer_key())
        logger.info(f"Signed request {signed.hash()[:16]}... for {request.sender[:16]}... nonce={request.nonce}")
        return signed

    def build_signed(self, sender: str, destination: str, call_data: bytes = b"", **kwargs) -> PackedRequest:
        return self.sign(self.build_unsigned(sender, destination, call_data, **kwargs))
