import pytest

from acctkit.blockchain.core.account import SmartAccount
from acctkit.blockchain.core.contracts import Counter
from acctkit.blockchain.core.events import EventBus
from acctkit.blockchain.core.host import HostState
from acctkit.blockchain.core.tx_receipt import TxReceiptStore
from acctkit.protocol.crypto.addresses import address_from_pubkey
from acctkit.protocol.crypto.keys import generate_private_key, public_key_from_private
from acctkit.protocol.types.request import PackedRequest

INITIAL_BALANCE = 10**18


def new_address() -> str:
    return address_from_pubkey(public_key_from_private(generate_private_key()))


@pytest.fixture
def owner_key():
    return generate_private_key()


@pytest.fixture
def owner(owner_key):
    return address_from_pubkey(public_key_from_private(owner_key))


@pytest.fixture
def host():
    return HostState()


@pytest.fixture
def bus():
    bus = EventBus()
    yield bus
    bus.clear()


@pytest.fixture
def receipts():
    store = TxReceiptStore()
    yield store
    store.clear()


@pytest.fixture
def account(host, owner, bus, receipts):
    addr = new_address()
    host.set_balance(addr, INITIAL_BALANCE)
    return SmartAccount(host, addr, owner, bus=bus, receipts=receipts)


@pytest.fixture
def counter(host):
    addr = new_address()
    host.install(addr, Counter())
    return addr


@pytest.fixture
def make_request(account):
    """Factory for unsigned requests from the test account."""
    def _make(destination, call_data=b"", nonce=0, **fields):
        params = dict(
            sender=account.address,
            nonce=nonce,
            destination=destination,
            call_data=call_data,
            verification_gas_limit=100_000,
            call_gas_limit=200_000,
            max_priority_fee_per_gas=1,
            max_fee_per_gas=10,
        )
        params.update(fields)
        return PackedRequest(**params)
    return _make
