"""Custom exceptions for trip-ledger."""


class TripLedgerError(Exception):
    """Base exception for all trip-ledger errors."""

    pass


class ConfigurationError(TripLedgerError, ValueError):
    """Raised when configuration is invalid or missing."""

    pass


class ConservationError(TripLedgerError):
    """Raised when computed balances for a trip do not sum to zero."""

    def __init__(self, total: int, message: str | None = None):
        self.total = total
        super().__init__(
            message
            or f"Balances do not sum to zero (off by {total} minor units); "
            f"expense shares are inconsistent with expense totals"
        )


class InvalidRateError(TripLedgerError):
    """Raised when an exchange rate cannot be used for conversion."""

    pass


class APIError(TripLedgerError):
    """Base class for API-related errors."""

    pass


class FxAPIError(APIError):
    """Raised when the exchange rate API request fails."""

    pass
