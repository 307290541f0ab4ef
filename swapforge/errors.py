"""Exception types raised by swapforge."""

from __future__ import annotations

from typing import Iterable, List


class SwapforgeError(Exception):
    """Base class for all swapforge errors."""


class CodecRangeError(SwapforgeError, ValueError):
    """Raised when a value cannot be represented in its field."""


class LayoutConflictError(SwapforgeError):
    """Raised when two size-discriminated layouts share a byte span."""


class AccountNotFoundError(SwapforgeError):
    """Raised when an account is absent, malformed or not initialized."""


class ValidationError(SwapforgeError):
    """Raised when a deployment config fails validation."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")


class ConfigurationError(SwapforgeError, ValueError):
    """Raised when token or price data needed for a deploy is missing."""


class OnChainMismatchError(SwapforgeError):
    """Raised when on-chain state contradicts an immutable desired value."""


class TransactionError(SwapforgeError):
    """Raised when a transaction could not be confirmed."""


class CheckpointMismatchError(SwapforgeError):
    """Raised when checkpoint files disagree with each other."""
