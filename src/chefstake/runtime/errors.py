from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

Json = Dict[str, Any]


@dataclass
class ChefError(Exception):
    """Canonical error type for registry, accrual and asset-ledger failures.

    Every failure aborts the enclosing operation; state is left as it was
    before the call.
    """

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:  # pragma: no cover
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class UnauthorizedError(ChefError):
    """Caller lacks the admin (or minting) capability."""


class InsufficientStakeError(ChefError):
    """Withdraw amount exceeds the caller's position."""


class InsufficientBalanceOrAllowanceError(ChefError):
    """An asset transfer was rejected by the ledger."""


class ClockRegressionError(ChefError):
    """The clock moved behind a pool's last settlement. Not recoverable."""


class ArithmeticOverflowError(ChefError):
    """Reward or accumulator math left the 256-bit unsigned range."""


class UnknownPoolError(ChefError):
    pass


class InvalidAmountError(ChefError):
    pass


def unauthorized(reason: str, **details: Any) -> UnauthorizedError:
    return UnauthorizedError("unauthorized", reason, details)


def invalid_amount(reason: str, **details: Any) -> InvalidAmountError:
    return InvalidAmountError("invalid_amount", reason, details)


__all__ = [
    "ArithmeticOverflowError",
    "ChefError",
    "ClockRegressionError",
    "InsufficientBalanceOrAllowanceError",
    "InsufficientStakeError",
    "InvalidAmountError",
    "UnauthorizedError",
    "UnknownPoolError",
    "invalid_amount",
    "unauthorized",
]
