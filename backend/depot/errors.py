"""
Depot error taxonomy.

Every rejection surfaced by the engine names the precondition that failed so
the presentation layer can render an actionable message. Nothing raised from
here is partially applied: the unit of work that raised is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass


class DepotError(Exception):
    """Base class for rejections surfaced to the caller."""

    code = "DEPOT_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DepotError, ValueError):
    """Malformed input; recoverable locally by the caller."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(DepotError):
    """Referenced product/customer/tier does not exist or is not visible to the outlet."""

    code = "NOT_FOUND"
    http_status = 404


class InsufficientStock(DepotError):
    """One or more sale lines exceed available filled stock."""

    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, items: list[dict]):
        self.items = items
        parts = [
            f"insufficient stock for {item.get('product_name') or item['product_id']} "
            f"(have {item['available']}, need {item['requested']})"
            for item in items
        ]
        super().__init__("; ".join(parts), details={"items": items})


class InsufficientCapital(DepotError):
    """An 'out' capital entry would drive the outlet balance negative."""

    code = "INSUFFICIENT_CAPITAL"
    http_status = 409

    def __init__(self, balance: int, requested: int):
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"capital out of {requested} exceeds current balance {balance}",
            details={"balance": balance, "requested": requested},
        )


class ConcurrencyConflict(DepotError):
    """Storage reported a serialization failure; the caller may resubmit."""

    code = "CONCURRENCY_CONFLICT"
    http_status = 409

    def __init__(self, message: str = "concurrent update conflict, please retry", details: dict | None = None):
        details = dict(details or {})
        details.setdefault("retryable", True)
        super().__init__(message, details=details)


@dataclass(frozen=True)
class EmptyStockUnderflow:
    """
    Warning attached to a successful restock/sale when the empty-container
    counter would have gone negative and was clamped to zero.
    """

    product_id: int
    requested: int
    available: int

    code = "EMPTY_STOCK_UNDERFLOW"

    @property
    def shortfall(self) -> int:
        return self.requested - self.available

    @property
    def message(self) -> str:
        return (
            f"only {self.available} empty containers on hand for {self.requested} requested; "
            "empty stock set to 0"
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
            "shortfall": self.shortfall,
            "message": self.message,
        }
