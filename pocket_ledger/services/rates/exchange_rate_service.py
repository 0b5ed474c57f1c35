"""
Exchange Rate Service

Fetches current quotes from a public exchange-rate API and turns them into
the ledger's rate table format.

The API quotes "units of X per 1 base". The ledger stores the inverse,
"base units per 1 X", so every quote is inverted and rounded before it is
returned.

This service ONLY fetches. It never writes to storage; the caller decides
whether to merge the result into the rate table.
"""

import math
from typing import Iterable, Optional

import requests
import structlog
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import RateServiceSettings


logger = structlog.get_logger(__name__)


class RateServiceError(Exception):
    """Base exception for exchange-rate errors."""
    pass


class RateFetchError(RateServiceError):
    """The rate API could not be reached or returned an unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def _is_transient(exc: BaseException) -> bool:
    """Connection failures, timeouts and 5xx responses are worth another try."""
    if isinstance(exc, requests.HTTPError):
        return exc.response is not None and exc.response.status_code >= 500
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


class ExchangeRateService:
    """
    Client for an open.er-api.com style endpoint.

    ``GET {api_base_url}/{base}`` is expected to return
    ``{"result": "success", "rates": {"USD": 0.031, ...}}``.
    """

    def __init__(
        self,
        settings: Optional[RateServiceSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().rates
        self._session = session or requests.Session()

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _get_quotes(self, base_currency: str) -> dict:
        url = f"{self._settings.api_base_url.rstrip('/')}/{base_currency}"
        response = self._session.get(url, timeout=self._settings.timeout_seconds)
        response.raise_for_status()
        return response.json()

    def convert_quotes(
        self,
        quotes: dict,
        currencies: Iterable[str],
        base_currency: str,
    ) -> dict[str, float]:
        """
        Invert API quotes into base-currency units per unit of each currency.

        Currencies missing from the quotes, or quoted as zero or a
        non-number, are left out.
        """
        rates = {}
        for currency in currencies:
            currency = currency.upper()
            if currency == base_currency:
                continue
            quote = quotes.get(currency)
            if isinstance(quote, bool) or not isinstance(quote, (int, float)):
                continue
            if quote == 0 or not math.isfinite(quote):
                continue
            rates[currency] = round(1 / quote, self._settings.decimal_places)
        return rates

    def fetch_rates(
        self,
        currencies: Iterable[str],
        base_currency: str,
    ) -> dict[str, float]:
        """
        Fetch current rates for ``currencies`` against ``base_currency``.

        Returns:
            Map of currency code to base-currency units per unit. The base
            currency itself is never included.

        Raises:
            RateFetchError: Network failure after retries, non-2xx status,
                undecodable body, or ``result`` other than "success"
        """
        base_currency = base_currency.upper()
        currencies = list(currencies)

        try:
            payload = self._get_quotes(base_currency)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning("rate_fetch_failed", base=base_currency, status_code=status)
            raise RateFetchError(f"Rate API returned HTTP {status}", status_code=status) from e
        except ValueError as e:
            logger.warning("rate_fetch_failed", base=base_currency, error="invalid_json")
            raise RateFetchError(f"Rate API returned invalid JSON: {e}") from e
        except requests.RequestException as e:
            logger.warning("rate_fetch_failed", base=base_currency, error=str(e))
            raise RateFetchError(f"Could not reach rate API: {e}") from e

        if not isinstance(payload, dict) or payload.get("result") != "success":
            result = payload.get("result") if isinstance(payload, dict) else None
            raise RateFetchError(f"Rate API did not succeed (result={result!r})")

        quotes = payload.get("rates")
        if not isinstance(quotes, dict):
            raise RateFetchError("Rate API response has no rates")

        rates = self.convert_quotes(quotes, currencies, base_currency)
        logger.info(
            "rates_fetched",
            base=base_currency,
            requested=len(currencies),
            received=len(rates),
        )
        return rates
