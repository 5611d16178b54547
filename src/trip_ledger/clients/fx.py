"""Exchange rate API client (Open Exchange Rates)."""

import logging
from datetime import date

import httpx

from ..exceptions import FxAPIError
from ..models import FxRate

logger = logging.getLogger(__name__)


class FxRateClient:
    """Client for historical exchange rates.

    The API always quotes against USD on the free tier, so rates for any
    other base currency are derived by dividing through the base's USD rate.
    """

    BASE_URL = "https://openexchangerates.org/api"

    def __init__(
        self, api_key: str, base_url: str | None = None, timeout: float = 30.0
    ):
        """Initialize the exchange rate client."""
        self.api_key = api_key
        self.client = httpx.Client(
            base_url=base_url or self.BASE_URL,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_rates(self, base_currency: str, rate_date: date) -> list[FxRate]:
        """
        Fetch all rates for a base currency on a given date.

        Args:
            base_currency: ISO 4217 code the rates are quoted against
            rate_date: Date of the historical snapshot

        Returns:
            One FxRate per target currency, including base -> base at 1.0

        Raises:
            FxAPIError: If the request fails or the payload is unusable
        """
        path = (
            "/latest.json"
            if rate_date == date.today()
            else f"/historical/{rate_date.isoformat()}.json"
        )

        try:
            response = self.client.get(path, params={"app_id": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise FxAPIError(f"Exchange rate request failed: {e}") from e
        except ValueError as e:
            raise FxAPIError(f"Exchange rate API returned invalid JSON: {e}") from e

        raw_rates = data.get("rates")
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise FxAPIError("Exchange rate API returned no rates")

        api_base = data.get("base", "USD")
        if base_currency != api_base:
            base_rate = raw_rates.get(base_currency)
            if not base_rate:
                raise FxAPIError(
                    f"Cannot rebase rates to {base_currency}: "
                    f"rate not found in API response"
                )
            raw_rates = {
                currency: rate / base_rate for currency, rate in raw_rates.items()
            }
            raw_rates[base_currency] = 1.0

        logger.info(
            f"Fetched {len(raw_rates)} rates for {base_currency} on {rate_date}"
        )

        return [
            FxRate(
                base_currency=base_currency,
                target_currency=currency,
                date=rate_date,
                rate=float(rate),
            )
            for currency, rate in raw_rates.items()
        ]
