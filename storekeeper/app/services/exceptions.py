"""Domain errors raised by the store services.

Every error derives from ``ValueError`` so callers that only care about
"the request was rejected" can keep catching that.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID


class StoreError(ValueError):
    """Base class for all sale, ledger and inventory failures."""


class NotFoundError(StoreError):
    """A referenced product, customer or sale does not exist."""


class ConflictError(StoreError):
    """The request collides with existing data (unique keys, history)."""


class DuplicateSubmissionError(ConflictError):
    """A sale with the same ``sync_id`` was already recorded."""

    def __init__(self, sync_id: str) -> None:
        super().__init__(f"Sale with syncId '{sync_id}' already exists")
        self.sync_id = sync_id


class InvalidRequestError(StoreError):
    """The request itself is malformed for the current data."""


class InsufficientStockError(InvalidRequestError):
    def __init__(
        self,
        product_id: UUID,
        product_name: str,
        requested: Decimal,
        available: Decimal,
    ) -> None:
        super().__init__(
            f"Insufficient stock for product: {product_name} "
            f"({available} available, {requested} requested)"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidStateError(StoreError):
    """The target exists but is not in a state that allows the operation."""


class ConcurrentUpdateError(InvalidStateError):
    """Another transaction changed the same rows first; nothing was written."""
