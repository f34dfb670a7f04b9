"""Exception hierarchy for stock-aid."""

from __future__ import annotations


class StockAidError(Exception):
    """Base exception for all stock-aid errors."""


class ValidationError(StockAidError):
    """Request input is missing or malformed. Nothing was written."""


class NotFoundError(StockAidError):
    """A referenced record does not exist."""


class UnknownUserError(NotFoundError):
    """The acting user id is not registered."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"user id is invalid: {user_id!r}")


class UnknownStoreError(NotFoundError):
    """The store id is not registered."""

    def __init__(self, store_id: str) -> None:
        self.store_id = store_id
        super().__init__(f"store id is invalid: {store_id!r}")


class TransactionConflictError(StockAidError):
    """A unit of work could not acquire the write lock after all retries."""

    def __init__(self, key: str, attempts: int) -> None:
        self.key = key
        self.attempts = attempts
        super().__init__(f"transaction on {key!r} gave up after {attempts} attempt(s)")


class ReferenceDataError(StockAidError):
    """A static reference file could not be loaded."""


class PlacesError(StockAidError):
    """The places API could not be reached or returned an error."""


class StoreVettingError(PlacesError):
    """The store could not be verified as a single real grocery store."""
