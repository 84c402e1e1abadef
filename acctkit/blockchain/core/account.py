# MIT License
# Copyright (c) 2025 Hashborn

"""
Smart account: transaction admission and execution.

Entry points and who may call them:

    validate_and_return_verdict  bootloader          validate, return Verdict
    execute_if_authorized        bootloader or owner execute (validated upstream)
    self_service_submit          anyone              validate, require SUCCESS, execute
    settle_fee                   anyone              remit the fee to the bootloader
    transfer_ownership           owner

Validation consumes the nonce, checks solvency, then recovers the signer.
Nonce and balance failures raise; a signer that is not the owner is reported
as Verdict.SIGNATURE_MISMATCH and left for the caller to act on.

settle_fee pays on every call. Callers must invoke it exactly once per
admitted request; the account does not track settlement.

Every entry point runs inside host.atomic(): a failure leaves balances,
storage and the nonce registry exactly as they were.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from .events import EventBus, FEE_PAID, OWNER_CHANGED, TX_EXECUTED, TX_FAILED, TX_VALIDATED, event_bus
from .fees import FeeModel
from .host import HostState
from .tx_receipt import TxReceiptStore, tx_receipt_store
from ..observability import metrics
from ...protocol.config.params import BOOTLOADER_ADDRESS, DEPLOYER_ADDRESS
from ...protocol.crypto.addresses import address_from_pubkey, decode_address, is_valid_address, same_address
from ...protocol.crypto.keys import recover_public_key
from ...protocol.types.common import (
    AccountError,
    ExecutionFailed,
    ExecutionPath,
    FeeTransferFailed,
    InsufficientBalance,
    InvalidSignature,
    Revert,
    Unauthorized,
    Verdict,
)
from ...protocol.types.request import PackedRequest

logger = logging.getLogger(__name__)


def recover_signer(request: PackedRequest, prefix: str) -> Optional[str]:
    """Address that signed the request's canonical hash, or None if unrecoverable."""
    pub = recover_public_key(request.hash_bytes, request.signature_bytes)
    if pub is None:
        return None
    return address_from_pubkey(pub, prefix=prefix)


class SmartAccount:
    def __init__(self,
                 host: HostState,
                 address: str,
                 owner: str,
                 fee_model: Optional[FeeModel] = None,
                 bus: Optional[EventBus] = None,
                 receipts: Optional[TxReceiptStore] = None):
        if not is_valid_address(address):
            raise ValueError(f"Invalid account address: {address}")
        if not is_valid_address(owner):
            raise ValueError(f"Invalid owner address: {owner}")

        self.host = host
        self.address = address
        self._owner = owner
        self.fee_model = fee_model or FeeModel()
        self.bus = bus or event_bus
        self.receipts = receipts or tx_receipt_store
        self._prefix = decode_address(owner)[0]

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def balance(self) -> int:
        return self.host.balance_of(self.address)

    @property
    def nonce(self) -> int:
        return self.host.nonce_holder.get_min_nonce(self.address)

    # --- Guards ---
    def _require_caller(self, caller: str, op: str, *allowed: str) -> None:
        if not any(same_address(caller, a) for a in allowed):
            metrics.record_unauthorized(op)
            logger.warning(f"{op}: caller {caller} rejected for account {self.address}")
            raise Unauthorized(f"{op}: caller {caller} is not permitted", caller=caller, op=op)

    @contextmanager
    def _operation(self, op: str, request: PackedRequest) -> Iterator[None]:
        """Atomic scope that logs, counts and records any failure before re-raising."""
        try:
            with self.host.atomic():
                yield
        except (AccountError, Revert) as e:
            code = getattr(e, "code", "REVERT")
            tx_hash = request.hash()
            metrics.record_error(code)
            self.receipts.mark_failed(tx_hash, f"{code}: {e}")
            self.bus.emit(TX_FAILED, account=self.address, tx_hash=tx_hash, op=op, error=str(e))
            logger.error(f"{op} failed for {tx_hash[:16]}...: {code}: {e}")
            raise

    # --- Ownership ---
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._require_caller(caller, "transfer_ownership", self._owner)
        if not is_valid_address(new_owner):
            raise ValueError(f"Invalid owner address: {new_owner}")
        old_owner, self._owner = self._owner, new_owner
        self._prefix = decode_address(new_owner)[0]
        logger.info(f"Account {self.address} owner changed {old_owner} -> {new_owner}")
        self.bus.emit(OWNER_CHANGED, account=self.address, old_owner=old_owner, new_owner=new_owner)

    # --- Composite entry points ---
    def validate_and_return_verdict(self, caller: str, request: PackedRequest) -> Verdict:
        self._require_caller(caller, "validate", BOOTLOADER_ADDRESS)
        with self._operation("validate", request):
            verdict = self._validate(request)
        metrics.record_nonce_advance()
        return verdict

    def execute_if_authorized(self, caller: str, request: PackedRequest) -> None:
        self._require_caller(caller, "execute", BOOTLOADER_ADDRESS, self._owner)
        with self._operation("execute", request):
            self._execute(request)

    def self_service_submit(self, caller: str, request: PackedRequest) -> Verdict:
        """Validate then execute in one atomic step. Open to any caller holding a signed request."""
        with self._operation("submit", request):
            verdict = self._validate(request)
            if not verdict.ok:
                raise InvalidSignature(
                    "signature does not match account owner",
                    caller=caller, verdict=verdict.value,
                )
            self._execute(request)
        metrics.record_nonce_advance()
        return verdict

    def settle_fee(self, caller: str, request: PackedRequest) -> int:
        """Transfers the request's fee to the bootloader. Returns the amount paid."""
        with self._operation("settle_fee", request):
            amount = self.fee_model.fee_amount(request)
            if not self.host.transfer(self.address, BOOTLOADER_ADDRESS, amount):
                raise FeeTransferFailed(
                    f"could not pay {amount} to bootloader (balance {self.balance})",
                    amount=amount, balance=self.balance,
                )

        tx_hash = request.hash()
        metrics.record_fee(amount)
        self.receipts.add_fee(tx_hash, amount)
        self.bus.emit(FEE_PAID, account=self.address, tx_hash=tx_hash, amount=amount, recipient=BOOTLOADER_ADDRESS)
        logger.info(f"Fee {amount} paid by {caller[:16]}... for {tx_hash[:16]}...")
        return amount

    # --- Core steps ---
    def verify_signature(self, request: PackedRequest) -> Verdict:
        signer = recover_signer(request, self._prefix)
        if signer is not None and same_address(signer, self._owner):
            return Verdict.SUCCESS
        return Verdict.SIGNATURE_MISMATCH

    def _validate(self, request: PackedRequest) -> Verdict:
        if not same_address(request.sender, self.address):
            raise Unauthorized(
                f"request sender {request.sender} is not this account",
                sender=request.sender, account=self.address,
            )

        # 1. Nonce: conditional advance, mismatch raises NonceMismatch
        self.host.nonce_holder.increment_min_nonce_if_equals(self.address, request.nonce)

        # 2. Solvency, nothing moves here
        required = self.fee_model.required_balance(request)
        balance = self.balance
        if balance < required:
            raise InsufficientBalance(
                f"Insufficient balance: have {balance}, need {required}",
                balance=balance, required=required,
            )

        # 3. Signature verdict
        verdict = self.verify_signature(request)

        tx_hash = request.hash()
        metrics.record_validation(verdict.value)
        self.receipts.mark_validated(tx_hash, verdict.value, verdict.ok)
        self.bus.emit(TX_VALIDATED, account=self.address, tx_hash=tx_hash, verdict=verdict)
        logger.info(f"Validated {tx_hash[:16]}... nonce={request.nonce} verdict={verdict.name}")
        return verdict

    def _execute(self, request: PackedRequest) -> None:
        data = request.call_data_bytes
        gas = request.call_gas_limit

        if request.destination == DEPLOYER_ADDRESS:
            path = ExecutionPath.DEPLOYER
            try:
                self.host.system_call_with_propagated_revert(
                    self.address, DEPLOYER_ADDRESS, request.value, data, gas
                )
            except Revert as e:
                raise ExecutionFailed(f"deployment failed: {e.reason}", path=path.value, reason=e.reason) from e
        else:
            path = ExecutionPath.CALL
            success = self.host.call(self.address, request.destination, request.value, data, gas)
            if not success:
                raise ExecutionFailed(
                    f"call to {request.destination} failed",
                    path=path.value, destination=request.destination,
                )

        tx_hash = request.hash()
        metrics.record_execution(path.value)
        self.receipts.mark_executed(tx_hash, path.value)
        self.bus.emit(TX_EXECUTED, account=self.address, tx_hash=tx_hash, path=path)
        logger.info(f"Executed {tx_hash[:16]}... via {path.value}")
