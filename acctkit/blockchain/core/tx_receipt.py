# MIT License
# Copyright (c) 2025 Hashborn

"""
Request receipt tracking.

Records what the account engine decided for each request hash.
"""
from dataclasses import dataclass
from typing import Dict, Optional
import time
import logging
from threading import RLock

logger = logging.getLogger(__name__)

VALIDATED = "validated"
REJECTED = "rejected"    # signature did not match the owner
EXECUTED = "executed"
FAILED = "failed"
SETTLED = "settled"     # fee remitted with no other record


@dataclass
class TxReceipt:
    """
    Attributes:
        tx_hash: Canonical request hash
        status: One of validated / rejected / executed / failed / settled
        verdict: Signature verdict value, when validation ran
        path: Execution path ("call" or "deployer"), when execution ran
        error: Error code and message if the operation failed
        fee_paid: Total fee remitted for this request
        timestamp: Last update (unix timestamp)
    """
    tx_hash: str
    status: str
    verdict: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None
    fee_paid: int = 0
    timestamp: int = 0

    def __post_init__(self):
        if self.timestamp == 0:
            self.timestamp = int(time.time())

    def to_dict(self) -> dict:
        return {
            "tx_hash": self.tx_hash,
            "status": self.status,
            "verdict": self.verdict,
            "path": self.path,
            "error": self.error,
            "fee_paid": self.fee_paid,
            "timestamp": self.timestamp,
        }


class TxReceiptStore:
    """Thread-safe in-memory receipt store with oldest-first eviction."""

    def __init__(self, max_receipts: int = 10000):
        self.receipts: Dict[str, TxReceipt] = {}
        self.max_receipts = max_receipts
        self.lock = RLock()

    def _upsert(self, tx_hash: str, **fields) -> TxReceipt:
        with self.lock:
            receipt = self.receipts.get(tx_hash)
            if receipt is None:
                receipt = TxReceipt(tx_hash=tx_hash, status=fields.pop("status"))
                self.receipts[tx_hash] = receipt
            for key, value in fields.items():
                setattr(receipt, key, value)
            receipt.timestamp = int(time.time())

            if len(self.receipts) > self.max_receipts:
                self._cleanup_old_receipts()
            return receipt

    def mark_validated(self, tx_hash: str, verdict: str, ok: bool) -> TxReceipt:
        return self._upsert(tx_hash, status=VALIDATED if ok else REJECTED, verdict=verdict, error=None)

    def mark_executed(self, tx_hash: str, path: str) -> TxReceipt:
        return self._upsert(tx_hash, status=EXECUTED, path=path, error=None)

    def mark_failed(self, tx_hash: str, error: str) -> TxReceipt:
        logger.debug(f"Receipt {tx_hash[:16]}... failed: {error}")
        return self._upsert(tx_hash, status=FAILED, error=error)

    def add_fee(self, tx_hash: str, amount: int) -> TxReceipt:
        with self.lock:
            existing = self.receipts.get(tx_hash)
            total = (existing.fee_paid if existing else 0) + amount
            status = existing.status if existing else SETTLED
            return self._upsert(tx_hash, status=status, fee_paid=total)

    def get_receipt(self, tx_hash: str) -> Optional[TxReceipt]:
        with self.lock:
            return self.receipts.get(tx_hash)

    def _cleanup_old_receipts(self):
        """Drops the oldest 10% of receipts."""
        to_remove = max(1, len(self.receipts) // 10)
        oldest = sorted(self.receipts.items(), key=lambda item: item[1].timestamp)[:to_remove]
        for tx_hash, _ in oldest:
            del self.receipts[tx_hash]
        logger.debug(f"Cleaned up {to_remove} old receipts")

    def clear(self):
        with self.lock:
            self.receipts.clear()


# Global receipt store instance
tx_receipt_store = TxReceiptStore()
