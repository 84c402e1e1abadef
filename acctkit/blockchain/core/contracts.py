# MIT License
# Copyright (c) 2025 Hashborn

"""
Contract code model for the host environment.

Contracts are stateless Python objects; their state lives in the host's
per-address storage and is reached through the CallContext. Call data is a
compact JSON document: {"args": [...], "method": "<name>"}.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, TYPE_CHECKING

from ...protocol.config.params import GAS_COSTS
from ...protocol.types.common import OutOfGas, Revert

if TYPE_CHECKING:
    from .host import HostState


def encode_call(method: str, *args: Any) -> bytes:
    """Builds call data for `method` with positional JSON-serializable args."""
    return json.dumps({"method": method, "args": list(args)}, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_call(data: bytes) -> Tuple[str, List[Any]]:
    try:
        body = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise Revert("malformed call data")
    if not isinstance(body, dict) or not isinstance(body.get("method"), str):
        raise Revert("call data must name a method")
    args = body.get("args", [])
    if not isinstance(args, list):
        raise Revert("call data args must be a list")
    return body["method"], args


class GasMeter:
    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    @property
    def left(self) -> int:
        return self.limit - self.used

    def consume(self, amount: int) -> None:
        if amount > self.left:
            raise OutOfGas(amount, self.left)
        self.used += amount


@dataclass
class CallContext:
    host: "HostState"
    address: str          # address of the executing contract
    caller: str
    value: int
    gas: GasMeter
    is_system: bool = False

    @property
    def storage(self) -> Dict[str, Any]:
        # Not cached: a rolled-back inner frame replaces the host's storage maps
        return self.host.storage_of(self.address)

    def sload(self, key: str, default: Any = None) -> Any:
        return self.storage.get(key, default)

    def sstore(self, key: str, value: Any) -> None:
        self.gas.consume(GAS_COSTS["storage_write"])
        self.storage[key] = value


class Contract:
    """
    Base class for contract code. Public entry points are `call_<method>`
    handlers taking the CallContext followed by the decoded args.
    Empty call data is a plain value transfer and is accepted.
    """
    code_name = "Contract"

    def constructor(self, ctx: CallContext, *args: Any) -> None:
        pass

    def handle(self, ctx: CallContext, data: bytes) -> Any:
        ctx.gas.consume(GAS_COSTS["call"])
        if not data:
            return None
        method, args = decode_call(data)
        handler = getattr(self, f"call_{method}", None)
        if handler is None:
            raise Revert(f"{self.code_name}: unknown method {method!r}")
        try:
            return handler(ctx, *args)
        except Revert:
            raise
        except TypeError as e:
            raise Revert(f"{self.code_name}.{method}: bad arguments ({e})") from e
        except Exception as e:
            raise Revert(f"{self.code_name}.{method}: {type(e).__name__}: {e}") from e


class Counter(Contract):
    code_name = "Counter"

    def constructor(self, ctx: CallContext, start: int = 0) -> None:
        ctx.sstore("count", int(start))

    def call_increment(self, ctx: CallContext) -> int:
        count = ctx.sload("count", 0) + 1
        ctx.sstore("count", count)
        return count

    def call_add(self, ctx: CallContext, amount: int) -> int:
        count = ctx.sload("count", 0) + int(amount)
        ctx.sstore("count", count)
        return count

    def call_get(self, ctx: CallContext) -> int:
        return ctx.sload("count", 0)

    def call_fail(self, ctx: CallContext, reason: str = "forced failure") -> None:
        raise Revert(f"Counter: {reason}")
