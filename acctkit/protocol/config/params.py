# MIT License
# Copyright (c) 2025 Hashborn

import os
from typing import Dict, Optional

from ..crypto.addresses import DEFAULT_PREFIX, system_address


# Reserved system addresses
BOOTLOADER_ADDRESS = system_address(0x8001)
DEPLOYER_ADDRESS = system_address(0x8006)

# Canonical request hash domain tag
REQUEST_HASH_DOMAIN = b"acctkit.request.v1"

UINT128_MAX = 2**128 - 1

# Gas charged inside call frames
GAS_COSTS = {
    "call":          700,
    "storage_write": 5_000,
    "deploy":        32_000,
}


class NetworkConfig:
    def __init__(self,
                 network_id: str,
                 chain_id: int,
                 is_local: bool = False,
                 bech32_prefix: str = DEFAULT_PREFIX,
                 default_verification_gas_limit: int = 100_000,
                 default_call_gas_limit: int = 200_000,
                 default_max_priority_fee_per_gas: int = 1,
                 default_max_fee_per_gas: int = 1_000,
                 # Local-network deterministic signing key (hex string)
                 dev_signer_key: Optional[str] = None):
        self.network_id = network_id
        self.chain_id = chain_id
        self.is_local = is_local
        self.bech32_prefix = bech32_prefix
        self.default_verification_gas_limit = default_verification_gas_limit
        self.default_call_gas_limit = default_call_gas_limit
        self.default_max_priority_fee_per_gas = default_max_priority_fee_per_gas
        self.default_max_fee_per_gas = default_max_fee_per_gas
        self.dev_signer_key = dev_signer_key

    def __repr__(self) -> str:
        return f"NetworkConfig(network_id={self.network_id!r}, chain_id={self.chain_id}, is_local={self.is_local})"


NETWORKS: Dict[str, NetworkConfig] = {
    "devnet": NetworkConfig(
        network_id="devnet",
        chain_id=31337,
        is_local=True,
        default_max_fee_per_gas=1,
        # Well-known development key, never used off the local network
        dev_signer_key="ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    ),
    "testnet": NetworkConfig(
        network_id="testnet",
        chain_id=300,
        default_max_fee_per_gas=250_000_000,
    ),
    "mainnet": NetworkConfig(
        network_id="mainnet",
        chain_id=324,
        default_max_priority_fee_per_gas=1_000_000,
        default_max_fee_per_gas=1_000_000_000,  # 1 Gwei
    ),
}


def get_network(name_or_chain_id) -> NetworkConfig:
    """Looks up a network by id ("devnet") or chain id (31337 / "31337")."""
    key = str(name_or_chain_id).strip().lower()
    if key in NETWORKS:
        return NETWORKS[key]
    for cfg in NETWORKS.values():
        if str(cfg.chain_id) == key:
            return cfg
    raise ValueError(f"Unknown network: {name_or_chain_id}")


# Default to devnet unless overridden from the environment
CURRENT_NETWORK = get_network(os.environ.get("ACCTKIT_NETWORK", "devnet"))
