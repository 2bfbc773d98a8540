"""
Error classes raised by the booking core.
"""


class BookingValidationError(ValueError):
    """Raised before any I/O when a checkout request cannot be submitted."""
    pass


class StoreError(Exception):
    """Raised when the record store fails to read or write."""
    pass


class CatalogNotLoadedError(Exception):
    """Raised when no reconciled catalog snapshot has been published yet."""
    pass
