# MIT License
# Copyright (c) 2025 Hashborn

"""
Contract-creation system contract.

Lives at DEPLOYER_ADDRESS and only answers system calls. Creation takes the
name of a registered code (the host's known-code registry) plus a salt and
constructor args:

    encode_call("create", "Counter", "salt-1", 5)
"""
import logging
from typing import Any

from .contracts import CallContext, Contract
from ...protocol.config.params import GAS_COSTS
from ...protocol.crypto.addresses import ADDRESS_BYTES, encode_address
from ...protocol.crypto.hash import length_prefixed, sha256
from ...protocol.types.common import Revert

logger = logging.getLogger(__name__)

CREATE_DOMAIN = b"acctkit.create.v1"


def compute_create_address(sender: str, code_name: str, salt: str) -> str:
    """Address of a contract created by `sender` from `code_name` with `salt`."""
    digest = sha256(
        CREATE_DOMAIN
        + length_prefixed(sender.encode("utf-8"))
        + length_prefixed(code_name.encode("utf-8"))
        + length_prefixed(str(salt).encode("utf-8"))
    )
    return encode_address(digest[-ADDRESS_BYTES:])


class Deployer(Contract):
    code_name = "Deployer"

    def handle(self, ctx: CallContext, data: bytes) -> Any:
        if not ctx.is_system:
            raise Revert("Deployer: system call required")
        if not data:
            raise Revert("Deployer: empty deployment payload")
        return super().handle(ctx, data)

    def call_create(self, ctx: CallContext, code_name: str, salt: str, *ctor_args: Any) -> str:
        ctx.gas.consume(GAS_COSTS["deploy"])

        code = ctx.host.known_code.get(code_name)
        if code is None:
            raise Revert(f"Deployer: unknown code {code_name!r}")

        address = compute_create_address(ctx.caller, code_name, salt)
        if ctx.host.has_code(address):
            raise Revert(f"Deployer: address {address} already has code")

        instance = code()
        ctx.host.install(address, instance)

        # Value forwarded to the deployer belongs to the new contract
        if ctx.value and not ctx.host.transfer(ctx.address, address, ctx.value):
            raise Revert("Deployer: could not forward value")

        child = CallContext(
            host=ctx.host,
            address=address,
            caller=ctx.caller,
            value=ctx.value,
            gas=ctx.gas,
        )
        try:
            instance.constructor(child, *ctor_args)
        except Revert:
            raise
        except Exception as e:
            raise Revert(f"Deployer: {code_name} constructor failed: {type(e).__name__}: {e}") from e

        logger.info(f"Deployed {code_name} at {address} for {ctx.caller[:16]}...")
        return address
