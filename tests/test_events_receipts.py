from acctkit.blockchain.core.events import FEE_PAID, TX_VALIDATED, EventBus
from acctkit.blockchain.core.tx_receipt import (
    EXECUTED, FAILED, REJECTED, SETTLED, VALIDATED, TxReceiptStore,
)


def test_event_bus_delivers_and_unsubscribes():
    bus = EventBus()
    seen = []

    def listener(**data):
        seen.append(data)

    bus.subscribe(TX_VALIDATED, listener)
    bus.emit(TX_VALIDATED, tx_hash="ab", verdict="0x202bcce7")
    bus.emit(FEE_PAID, tx_hash="ab", amount=1)
    bus.unsubscribe(TX_VALIDATED, listener)
    bus.emit(TX_VALIDATED, tx_hash="cd", verdict="0x202bcce7")

    assert seen == [{"tx_hash": "ab", "verdict": "0x202bcce7"}]


def test_event_bus_isolates_listener_errors():
    bus = EventBus()
    seen = []

    def broken(**data):
        raise RuntimeError("listener bug")

    bus.subscribe(FEE_PAID, broken)
    bus.subscribe(FEE_PAID, lambda **data: seen.append(data["amount"]))
    bus.emit(FEE_PAID, amount=5)

    assert seen == [5]


def test_receipt_lifecycle():
    store = TxReceiptStore()

    assert store.mark_validated("h1", "0x202bcce7", ok=True).status == VALIDATED
    receipt = store.mark_executed("h1", "call")
    assert receipt.status == EXECUTED
    assert receipt.verdict == "0x202bcce7"
    assert receipt.path == "call"

    store.add_fee("h1", 10)
    store.add_fee("h1", 5)
    assert store.get_receipt("h1").fee_paid == 15
    assert store.get_receipt("h1").status == EXECUTED

    assert store.mark_validated("h2", "0x00000000", ok=False).status == REJECTED
    assert store.mark_failed("h2", "NONCE_MISMATCH: expected 1").status == FAILED
    assert store.add_fee("h3", 7).status == SETTLED
    assert store.get_receipt("missing") is None


def test_receipt_store_evicts_oldest():
    store = TxReceiptStore(max_receipts=10)
    for i in range(11):
        store.mark_validated(f"h{i}", "0x202bcce7", ok=True)
        store.receipts[f"h{i}"].timestamp = i

    store.mark_validated("h11", "0x202bcce7", ok=True)
    assert len(store.receipts) == 10
    assert store.get_receipt("h0") is None
    assert store.get_receipt("h1") is None
    assert store.get_receipt("h11") is not None
