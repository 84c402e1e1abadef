import os
import shutil
import tempfile
import threading

import pytest

from acctkit.blockchain.core.contracts import Counter, encode_call
from acctkit.blockchain.core.host import HostState
from acctkit.blockchain.core.nonce_holder import NonceHolder
from acctkit.blockchain.storage.db import StorageDB
from acctkit.protocol.config.params import DEPLOYER_ADDRESS
from acctkit.protocol.types.common import NonceMismatch, OutOfGas, Revert

from conftest import new_address


@pytest.fixture
def db():
    temp_dir = tempfile.mkdtemp()
    db = StorageDB(os.path.join(temp_dir, "host.db"))
    yield db
    db.close()
    shutil.rmtree(temp_dir)


# ═══════════════════════════════════════════════════════════════════
# NONCE HOLDER
# ═══════════════════════════════════════════════════════════════════

def test_nonce_holder_conditional_advance():
    holder = NonceHolder()
    addr = new_address()

    assert holder.get_min_nonce(addr) == 0
    assert holder.increment_min_nonce_if_equals(addr, 0) == 1

    with pytest.raises(NonceMismatch):
        holder.increment_min_nonce_if_equals(addr, 0)
    with pytest.raises(NonceMismatch):
        holder.increment_min_nonce_if_equals(addr, 2)

    assert holder.get_min_nonce(addr) == 1


def test_nonce_holder_concurrent_submissions_share_no_nonce():
    holder = NonceHolder()
    addr = new_address()
    results = []
    barrier = threading.Barrier(16)

    def attempt():
        barrier.wait()
        try:
            holder.increment_min_nonce_if_equals(addr, 0)
            results.append(True)
        except NonceMismatch:
            results.append(False)

    threads = [threading.Thread(target=attempt) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert holder.get_min_nonce(addr) == 1


# ═══════════════════════════════════════════════════════════════════
# HOST PRIMITIVES
# ═══════════════════════════════════════════════════════════════════

def test_transfer():
    host = HostState()
    a, b = new_address(), new_address()
    host.set_balance(a, 100)

    assert host.transfer(a, b, 60) is True
    assert host.transfer(a, b, 41) is False
    assert host.transfer(a, b, -1) is False
    assert host.balance_of(a) == 40
    assert host.balance_of(b) == 60


def test_atomic_rolls_back_everything():
    host = HostState()
    a, b, counter = new_address(), new_address(), new_address()
    host.set_balance(a, 100)
    host.install(counter, Counter())

    with pytest.raises(RuntimeError):
        with host.atomic():
            host.transfer(a, b, 50)
            host.nonce_holder.increment_min_nonce_if_equals(a, 0)
            host.storage_of(counter)["count"] = 9
            raise RuntimeError("boom")

    assert host.balance_of(a) == 100
    assert host.balance_of(b) == 0
    assert host.nonce_holder.get_min_nonce(a) == 0
    assert host.storage_of(counter) == {}


def test_call_reports_success_flag_only():
    host = HostState()
    caller, counter = new_address(), new_address()
    host.set_balance(caller, 1_000)
    host.install(counter, Counter())

    assert host.call(caller, counter, 10, encode_call("increment"), 100_000) is True
    assert host.call(caller, counter, 10, encode_call("fail"), 100_000) is False
    assert host.call(caller, counter, 0, encode_call("nope"), 100_000) is False
    assert host.call(caller, counter, 0, b"{not json", 100_000) is False
    assert host.call(caller, counter, 0, encode_call("add", "abc"), 100_000) is False

    # Failed calls leave no trace, value included
    assert host.storage_of(counter)["count"] == 1
    assert host.balance_of(counter) == 10
    assert host.balance_of(caller) == 990


def test_call_with_insufficient_value_fails():
    host = HostState()
    caller, target = new_address(), new_address()
    host.set_balance(caller, 5)

    assert host.call(caller, target, 6, b"", 100_000) is False
    assert host.balance_of(caller) == 5


def test_deployer_refuses_ordinary_calls():
    host = HostState()
    caller = new_address()
    data = encode_call("create", "Counter", "s")

    assert host.call(caller, DEPLOYER_ADDRESS, 0, data, 100_000) is False

    address = host.system_call_with_propagated_revert(caller, DEPLOYER_ADDRESS, 0, data, 100_000)
    assert host.has_code(address)
    assert isinstance(host.code_at(address), Counter)


def test_system_call_propagates_revert():
    host = HostState()
    with pytest.raises(Revert):
        host.system_call_with_propagated_revert(new_address(), DEPLOYER_ADDRESS, 0, b"", 100_000)
    with pytest.raises(OutOfGas):
        host.system_call_with_propagated_revert(
            new_address(), DEPLOYER_ADDRESS, 0, encode_call("create", "Counter", "s"), 1_000
        )


def test_clone_is_independent():
    host = HostState()
    a, counter = new_address(), new_address()
    host.set_balance(a, 100)
    host.install(counter, Counter())

    sim = host.clone()
    sim.set_balance(a, 1)
    sim.call(a, counter, 0, encode_call("increment"), 100_000)

    assert host.balance_of(a) == 100
    assert host.storage_of(counter) == {}
    assert sim.storage_of(counter)["count"] == 1


def test_persist_and_load_round_trip(db):
    host = HostState()
    a, counter = new_address(), new_address()
    host.set_balance(a, 777)
    host.install(counter, Counter())
    host.call(a, counter, 0, encode_call("add", 4), 100_000)
    host.nonce_holder.increment_min_nonce_if_equals(a, 0)

    host.persist(db)
    loaded = HostState.load(db)

    assert loaded.balance_of(a) == 777
    assert isinstance(loaded.code_at(counter), Counter)
    assert loaded.storage_of(counter) == {"count": 4}
    assert loaded.nonce_holder.get_min_nonce(a) == 1
    assert loaded.has_code(DEPLOYER_ADDRESS)


def test_load_rejects_unknown_code(db):
    db.set_state(f"code:{new_address()}", "Mystery")
    with pytest.raises(ValueError, match="Unknown code"):
        HostState.load(db)
