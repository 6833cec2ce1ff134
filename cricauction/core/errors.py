"""
Typed errors raised by the auction core.

Every operation of the service either returns a result or raises one of
these. The API layer maps them to responses through `status` and
`to_dict()`; `Busy` is the only one a client should retry.
"""

from typing import Any, Dict, List, Optional


class AuctionError(Exception):
    """Base class for all recoverable auction errors."""

    code = "auction_error"
    status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "status": self.status}


class InvalidTransition(AuctionError):
    """Illegal state-machine move (e.g. start on an active auction)."""
    code = "invalid_transition"
    status = 409


class EmptyPool(AuctionError):
    """Auction has no eligible players."""
    code = "empty_pool"
    status = 409


class PlayerNotCurrent(AuctionError):
    """Bid or action targets a player that is not up for auction."""
    code = "player_not_current"
    status = 409


class NoActiveBid(AuctionError):
    """A sale was requested but the round has no leading bid."""
    code = "no_active_bid"
    status = 409


class BidTooLow(AuctionError):
    """Bid amount is below the required amount."""
    code = "bid_too_low"
    status = 422

    def __init__(self, required_amount: int, message: str = ""):
        super().__init__(message or f"Minimum bid amount is {required_amount}")
        self.required_amount = required_amount

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["required_amount"] = self.required_amount
        return data


class InsufficientBudget(AuctionError):
    """Team cannot afford the bid at bid time."""
    code = "insufficient_budget"
    status = 422


class BudgetExceeded(InsufficientBudget):
    """Team can no longer afford the purchase at commit time."""
    code = "budget_exceeded"


class RosterFull(AuctionError):
    """Team already holds its maximum number of players."""
    code = "roster_full"
    status = 422


class Forbidden(AuctionError):
    """Access policy denied the action."""
    code = "forbidden"
    status = 403


class NotFound(AuctionError):
    """Unknown auction, player, team or tournament."""
    code = "not_found"
    status = 404


class Busy(AuctionError):
    """The auction could not be locked in time; retry later."""
    code = "busy"
    status = 503


class ValidationError(AuctionError):
    """Malformed input, with field-level messages."""
    code = "validation_error"
    status = 400

    def __init__(self, errors: Dict[str, List[str]], message: str = ""):
        if not message:
            message = "; ".join(
                f"{name}: {', '.join(msgs)}" for name, msgs in errors.items()
            )
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field_name: str, message: str) -> "ValidationError":
        return cls({field_name: [message]})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class DependencyFailure(AuctionError):
    """Persistence or transport failed; the mutation was not committed."""
    code = "dependency_failure"
    status = 502

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConcurrencyConflict(DependencyFailure):
    """Stored record changed underneath us (version mismatch)."""
    code = "concurrency_conflict"
    status = 409


__all__ = [
    "AuctionError",
    "InvalidTransition",
    "EmptyPool",
    "PlayerNotCurrent",
    "NoActiveBid",
    "BidTooLow",
    "InsufficientBudget",
    "BudgetExceeded",
    "RosterFull",
    "Forbidden",
    "NotFound",
    "Busy",
    "ValidationError",
    "DependencyFailure",
    "ConcurrencyConflict",
]
