# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum
from typing import Any, Dict


class Verdict(str, Enum):
    """Outcome of signature verification. Not an error."""
    SUCCESS = "0x202bcce7"            # account validation success magic
    SIGNATURE_MISMATCH = "0x00000000"

    @property
    def ok(self) -> bool:
        return self is Verdict.SUCCESS


class ExecutionPath(str, Enum):
    CALL = "call"
    DEPLOYER = "deployer"


class ProtocolError(Exception):
    pass


class AccountError(ProtocolError):
    """Base for failures raised by the account engine. Always fatal to the operation."""
    code = "ACCOUNT_ERROR"

    def __init__(self, message: str = "", **data: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.data: Dict[str, Any] = data

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            out["data"] = self.data
        return out


class Unauthorized(AccountError):
    code = "UNAUTHORIZED"


class InvalidSignature(Unauthorized):
    """Raised only by entry points that gate execution on the verdict."""
    code = "INVALID_SIGNATURE"


class NonceMismatch(AccountError):
    code = "NONCE_MISMATCH"


class InsufficientBalance(AccountError):
    code = "INSUFFICIENT_BALANCE"


class ExecutionFailed(AccountError):
    code = "EXECUTION_FAILED"


class FeeTransferFailed(AccountError):
    code = "FEE_TRANSFER_FAILED"


class Revert(ProtocolError):
    """Contract-level failure inside a call frame."""

    def __init__(self, reason: str = "reverted"):
        super().__init__(reason)
        self.reason = reason


class OutOfGas(Revert):
    def __init__(self, needed: int, left: int):
        super().__init__(f"out of gas: need {needed}, have {left}")
        self.needed = needed
        self.left = left
