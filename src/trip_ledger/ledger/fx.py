"""Historical exchange rate lookup with a local cache."""

import logging
from datetime import date, datetime

from ..clients.fx import FxRateClient
from ..config import Settings
from ..db import Database
from ..exceptions import FxAPIError, InvalidRateError
from .reconciler import convert_amount

logger = logging.getLogger(__name__)


def format_date_for_fx(value: date | datetime) -> str:
    """Format a date the way rate lookups key it: YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def convert_currency(amount: int, rate: float) -> int:
    """
    Convert an amount in minor units with an exchange rate.

    Raises:
        InvalidRateError: If the rate is zero or negative
    """
    if rate <= 0:
        raise InvalidRateError(f"Cannot convert with rate {rate}")
    return convert_amount(amount, rate)


def calculate_inverse_rate(rate: float) -> float:
    """
    Rate for the opposite direction of a currency pair.

    Raises:
        InvalidRateError: If the rate is zero
    """
    if rate == 0:
        raise InvalidRateError("Cannot invert a zero exchange rate")
    return 1 / rate


class FxRateService:
    """Cache-first exchange rate lookup.

    Rates are read from the local cache first (either direction of the
    pair). On a miss, and only when an API key is configured, every rate
    for the source currency on that date is fetched and cached. API
    failures are logged and reported as a missing rate.
    """

    def __init__(self, settings: Settings, database: Database):
        """Initialize the rate service."""
        self.settings = settings
        self.db = database

    def get_rate(
        self, from_currency: str, to_currency: str, rate_date: date
    ) -> float | None:
        """
        Rate such that 1 from_currency = rate to_currency on rate_date.

        Returns:
            The rate, or None when it is not cached and cannot be fetched
        """
        if from_currency == to_currency:
            return 1.0

        cached = self.db.get_fx_rate(from_currency, to_currency, rate_date)
        if cached:
            logger.info(
                f"Using cached rate {from_currency}->{to_currency} "
                f"on {format_date_for_fx(rate_date)}: {cached.rate}"
            )
            return cached.rate

        reverse = self.db.get_fx_rate(to_currency, from_currency, rate_date)
        if reverse and reverse.rate != 0:
            logger.info(
                f"Using inverse of cached rate {to_currency}->{from_currency} "
                f"on {format_date_for_fx(rate_date)}"
            )
            return calculate_inverse_rate(reverse.rate)

        logger.debug(
            f"No cached rate {from_currency}->{to_currency} "
            f"on {format_date_for_fx(rate_date)}"
        )
        return self._fetch_rate(from_currency, to_currency, rate_date)

    def _fetch_rate(
        self, from_currency: str, to_currency: str, rate_date: date
    ) -> float | None:
        if not self.settings.fx_api_key:
            logger.warning(
                f"No FX API key configured; cannot fetch "
                f"{from_currency}->{to_currency} for {format_date_for_fx(rate_date)}"
            )
            return None

        try:
            with FxRateClient(
                self.settings.fx_api_key,
                base_url=self.settings.fx_api_url,
                timeout=self.settings.fx_timeout_seconds,
            ) as client:
                rates = client.get_rates(from_currency, rate_date)
        except FxAPIError as e:
            logger.error(f"Failed to fetch exchange rates: {e}")
            return None

        saved = self.db.save_fx_rates(rates)
        self.db.set_last_rates_sync(date.today())
        logger.info(f"Cached {saved} rates for {from_currency}")

        for rate in rates:
            if rate.target_currency == to_currency:
                return rate.rate

        logger.warning(f"Rate {from_currency}->{to_currency} missing from API response")
        return None
