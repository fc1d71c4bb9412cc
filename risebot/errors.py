"""
Error types for the bot.

Only ConfigurationError is fatal for the whole run. Everything else is caught
at the action or account boundary and turned into a result entry.
"""

from enum import Enum
from typing import Any, Optional, Tuple

from eth_abi import decode
from eth_utils import to_bytes

ERROR_STRING_SELECTOR = "0x08c379a0"


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_REVERTED = "transaction_reverted"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class BotError(Exception):
    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BotError):
    """Invalid settings, network config or account/proxy mismatch."""

    category = ErrorCategory.CONFIGURATION


class ConnectivityError(BotError):
    """Chain endpoint or proxy unreachable for one account."""

    category = ErrorCategory.CONNECTIVITY


class InsufficientFundsError(BotError):
    category = ErrorCategory.INSUFFICIENT_FUNDS

    def __init__(self, message: str, available: int = 0, required: int = 0):
        super().__init__(message)
        self.available = available
        self.required = required


class TransactionRevertedError(BotError):
    category = ErrorCategory.TRANSACTION_REVERTED

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        reason: Optional[str] = None,
        data: Optional[str] = None,
    ):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.reason = reason
        self.data = data


class UnitTimeoutError(BotError):
    category = ErrorCategory.TIMEOUT


def decode_revert_data(data: Any) -> Optional[str]:
    """Decode an Error(string) revert payload, None for anything else."""
    if not isinstance(data, str) or not data.startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], to_bytes(hexstr=data[10:]))
        return reason
    except Exception:
        return None


def describe_revert(error: Exception) -> Tuple[str, Optional[str], Optional[str]]:
    """Return (message, reason, data) for a failed contract interaction."""
    if isinstance(error, TransactionRevertedError):
        return error.message, error.reason, error.data

    data = getattr(error, "data", None)
    if data is not None and not isinstance(data, str):
        data = str(data)
    reason = decode_revert_data(data)
    message = getattr(error, "message", None) or str(error)
    return message, reason, data
