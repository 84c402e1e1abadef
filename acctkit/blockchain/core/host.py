# MIT License
# Copyright (c) 2025 Hashborn

"""
In-process hosting environment for smart accounts.

Holds native balances, contract code and storage, the nonce registry and the
deployer, and provides the primitives accounts build on:

- call(): low-level call, returns a success flag and discards return data
- system_call_with_propagated_revert(): privileged call, failures propagate
- transfer(): native value move, returns a success flag
- atomic(): all-or-nothing scope; state is restored if the body raises

Operations against the host are serialized by a re-entrant lock held for the
duration of each atomic scope.
"""
import copy
import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Type

from .contracts import CallContext, Contract, Counter, GasMeter
from .deployer import Deployer
from .nonce_holder import NonceHolder
from ..storage.db import StorageDB
from ...protocol.config.params import DEPLOYER_ADDRESS
from ...protocol.types.common import Revert

logger = logging.getLogger(__name__)

DEFAULT_KNOWN_CODE: Dict[str, Type[Contract]] = {
    Counter.code_name: Counter,
    Deployer.code_name: Deployer,
}


class HostState:
    def __init__(self, known_code: Optional[Dict[str, Type[Contract]]] = None):
        self.balances: Dict[str, int] = {}
        self.known_code: Dict[str, Type[Contract]] = dict(DEFAULT_KNOWN_CODE)
        if known_code:
            self.known_code.update(known_code)

        self._code: Dict[str, Contract] = {}
        self._storage: Dict[str, Dict[str, Any]] = {}
        self.nonce_holder = NonceHolder()
        self.lock = threading.RLock()

        self.install(DEPLOYER_ADDRESS, Deployer())

    # --- Balances ---
    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def set_balance(self, address: str, amount: int) -> None:
        """Genesis-style allocation. Not a transfer."""
        if amount < 0:
            raise ValueError("balance cannot be negative")
        with self.lock:
            self.balances[address] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        with self.lock:
            if amount < 0:
                return False
            if self.balance_of(sender) < amount:
                logger.debug(f"Transfer of {amount} from {sender[:16]}... rejected: insufficient balance")
                return False
            self.balances[sender] = self.balance_of(sender) - amount
            self.balances[recipient] = self.balance_of(recipient) + amount
            return True

    # --- Code & storage ---
    def install(self, address: str, contract: Contract) -> None:
        with self.lock:
            self._code[address] = contract
            self._storage.setdefault(address, {})

    def has_code(self, address: str) -> bool:
        return address in self._code

    def code_at(self, address: str) -> Optional[Contract]:
        return self._code.get(address)

    def storage_of(self, address: str) -> Dict[str, Any]:
        return self._storage.setdefault(address, {})

    # --- Atomicity ---
    def _snapshot(self) -> Dict[str, Any]:
        return {
            "balances": dict(self.balances),
            "code": dict(self._code),
            "storage": copy.deepcopy(self._storage),
            "nonces": self.nonce_holder.snapshot(),
        }

    def _restore(self, snap: Dict[str, Any]) -> None:
        self.balances = snap["balances"]
        self._code = snap["code"]
        self._storage = snap["storage"]
        self.nonce_holder.restore(snap["nonces"])

    @contextmanager
    def atomic(self) -> Iterator["HostState"]:
        with self.lock:
            snap = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snap)
                raise

    def clone(self) -> "HostState":
        """Creates a copy of the state (for simulation)."""
        with self.lock:
            cloned = HostState(self.known_code)
            cloned._restore(self._snapshot())
            return cloned

    # --- Calls ---
    def _dispatch(self, caller: str, target: str, value: int, data: bytes, gas: int, is_system: bool) -> Any:
        with self.atomic():
            if value and not self.transfer(caller, target, value):
                raise Revert("insufficient balance for call value")
            contract = self._code.get(target)
            if contract is None:
                # Plain value transfer to an address without code
                return None
            ctx = CallContext(
                host=self,
                address=target,
                caller=caller,
                value=value,
                gas=GasMeter(gas),
                is_system=is_system,
            )
            return contract.handle(ctx, data)

    def call(self, caller: str, target: str, value: int, data: bytes, gas: int) -> bool:
        """Low-level call. Returns the success flag only; return data is discarded."""
        try:
            self._dispatch(caller, target, value, data, gas, is_system=False)
        except Revert as e:
            logger.info(f"Call {caller[:16]}... -> {target[:16]}... reverted: {e.reason}")
            return False
        return True

    def system_call_with_propagated_revert(self, caller: str, target: str, value: int, data: bytes, gas: int) -> Any:
        """Privileged call used for system contracts; any Revert propagates to the caller."""
        return self._dispatch(caller, target, value, data, gas, is_system=True)

    # --- Persistence ---
    def persist(self, db: StorageDB) -> None:
        """Writes balances, code bindings, storage and nonces to DB."""
        with self.lock:
            for addr, bal in self.balances.items():
                db.set_state(f"bal:{addr}", str(bal))
            for addr, contract in self._code.items():
                db.set_state(f"code:{addr}", contract.code_name)
            for addr, slots in self._storage.items():
                db.set_state(f"sto:{addr}", json.dumps(slots, sort_keys=True))
            for addr, nonce in self.nonce_holder.items():
                db.set_state(f"nonce:{addr}", str(nonce))

    @classmethod
    def load(cls, db: StorageDB, known_code: Optional[Dict[str, Type[Contract]]] = None) -> "HostState":
        host = cls(known_code)
        for key, val in db.get_state_by_prefix("bal:").items():
            host.balances[key.split(":", 1)[1]] = int(val)
        for key, val in db.get_state_by_prefix("code:").items():
            code = host.known_code.get(val)
            if code is None:
                raise ValueError(f"Unknown code {val!r} stored at {key}")
            host.install(key.split(":", 1)[1], code())
        for key, val in db.get_state_by_prefix("sto:").items():
            host._storage[key.split(":", 1)[1]] = json.loads(val)
        host.nonce_holder.restore({
            key.split(":", 1)[1]: int(val) for key, val in db.get_state_by_prefix("nonce:").items()
        })
        logger.info(f"Loaded host state: {len(host.balances)} balances, {len(host._code)} contracts")
        return host
