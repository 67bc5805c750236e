"""
Error kinds raised by the Stock API.

Handlers map each kind to one HTTP status code instead of matching on
message text.
"""


class StockError(Exception):
    """Base class for all Stock API errors."""


class InvalidInputError(StockError):
    """Client supplied a malformed identifier."""


class NotFoundError(StockError):
    """No stock record matches the requested id."""

    def __init__(self, stock_id: int):
        self.stock_id = stock_id
        super().__init__(f"Stock {stock_id} not found")


class StoreFailureError(StockError):
    """The database could not be reached or the statement failed."""
