"""
Error taxonomy shared by every layer of the Manifest MCP server.

All failures are raised as a single exception type carrying a stable
``ErrorCode``; callers branch on ``error.code`` rather than on subclasses.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class ErrorCode(str, Enum):
    # Configuration errors
    INVALID_CONFIG = "INVALID_CONFIG"
    MISSING_CONFIG = "MISSING_CONFIG"

    # Wallet errors
    WALLET_NOT_CONNECTED = "WALLET_NOT_CONNECTED"
    WALLET_CONNECTION_FAILED = "WALLET_CONNECTION_FAILED"
    INVALID_MNEMONIC = "INVALID_MNEMONIC"

    # Client errors
    CLIENT_NOT_INITIALIZED = "CLIENT_NOT_INITIALIZED"
    RPC_CONNECTION_FAILED = "RPC_CONNECTION_FAILED"

    # Query errors
    QUERY_FAILED = "QUERY_FAILED"
    UNSUPPORTED_QUERY = "UNSUPPORTED_QUERY"
    INVALID_ADDRESS = "INVALID_ADDRESS"

    # Transaction errors
    TX_FAILED = "TX_FAILED"
    TX_SIMULATION_FAILED = "TX_SIMULATION_FAILED"
    TX_BROADCAST_FAILED = "TX_BROADCAST_FAILED"
    TX_CONFIRMATION_TIMEOUT = "TX_CONFIRMATION_TIMEOUT"
    UNSUPPORTED_TX = "UNSUPPORTED_TX"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"

    # Module errors
    UNKNOWN_MODULE = "UNKNOWN_MODULE"
    UNKNOWN_SUBCOMMAND = "UNKNOWN_SUBCOMMAND"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Retrying any of these cannot change the outcome.
NON_RETRYABLE_CODES: FrozenSet[ErrorCode] = frozenset(
    {
        ErrorCode.INVALID_CONFIG,
        ErrorCode.MISSING_CONFIG,
        ErrorCode.WALLET_NOT_CONNECTED,
        ErrorCode.INVALID_MNEMONIC,
        ErrorCode.INVALID_ADDRESS,
        ErrorCode.UNSUPPORTED_TX,
        ErrorCode.UNSUPPORTED_QUERY,
        ErrorCode.UNKNOWN_MODULE,
        ErrorCode.UNKNOWN_SUBCOMMAND,
        ErrorCode.INSUFFICIENT_FUNDS,
        ErrorCode.UNKNOWN_ERROR,
    }
)


class ManifestMCPError(Exception):
    """
    The one exception type raised across the server.

    Args:
        code: Machine-stable error kind.
        message: Human-readable message. Wrapping code appends the original
            failure's message here instead of dropping it.
        details: Optional structured diagnostics (redacted before leaving the
            process).
        retryable: ``False`` pins the error as permanent regardless of its
            message (used for argument validation). ``None`` defers to the
            code/message classification in :mod:`manifest_mcp.retry`.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"ManifestMCPError({self.code.value}, {self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": "ManifestMCPError",
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


def error_message(exc: BaseException) -> str:
    """Return the message text of any exception, falling back to its type name."""
    if isinstance(exc, ManifestMCPError):
        return exc.message
    text = str(exc)
    return text or type(exc).__name__


def wrap_error(
    exc: BaseException,
    code: ErrorCode,
    prefix: str,
    details: Optional[Dict[str, Any]] = None,
) -> ManifestMCPError:
    """Wrap a lower-level failure, keeping its message in the new error's text."""
    return ManifestMCPError(code, f"{prefix}: {error_message(exc)}", details)
