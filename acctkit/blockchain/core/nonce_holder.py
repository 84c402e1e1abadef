# MIT License
# Copyright (c) 2025 Hashborn

"""
Per-account replay protection registry.

Holds the minimum acceptable nonce for each account. The conditional advance is
the single contention point between concurrent submissions for one account,
so the check and the increment happen under one lock.
"""
import logging
import threading
from typing import Dict

from ...protocol.types.common import NonceMismatch

logger = logging.getLogger(__name__)


class NonceHolder:
    def __init__(self, min_nonces: Dict[str, int] = None):
        self._min_nonce: Dict[str, int] = dict(min_nonces or {})
        self._lock = threading.Lock()

    def get_min_nonce(self, address: str) -> int:
        with self._lock:
            return self._min_nonce.get(address, 0)

    def increment_min_nonce_if_equals(self, address: str, expected_nonce: int) -> int:
        """
        Advances the account's minimum nonce by one if it equals `expected_nonce`.

        Returns:
            The new minimum nonce.

        Raises:
            NonceMismatch: the registry's minimum differs from `expected_nonce`.
        """
        with self._lock:
            current = self._min_nonce.get(address, 0)
            if expected_nonce != current:
                raise NonceMismatch(
                    f"Invalid nonce: expected {current}, got {expected_nonce}",
                    account=address, expected=current, got=expected_nonce,
                )
            self._min_nonce[address] = current + 1

        logger.debug(f"Nonce for {address[:16]}... advanced to {current + 1}")
        return current + 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._min_nonce)

    def restore(self, snapshot: Dict[str, int]) -> None:
        with self._lock:
            self._min_nonce = dict(snapshot)

    def items(self):
        return self.snapshot().items()
