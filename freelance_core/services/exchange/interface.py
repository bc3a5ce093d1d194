"""
Exchange-Rate Provider Interface

DESIGN DECISION: Fetching rates is a network call to a third-party
service, and this package does no network I/O. The caller injects a
provider; the core only stores the snapshot it returns (see
SettingsService.update_exchange_rates) and converts against it.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class ExchangeRateProvider(ABC):
    """Source of a currency rate table."""

    @abstractmethod
    async def fetch_rates(self, base_currency: str) -> dict[str, Decimal]:
        """
        Fetch the latest rates for base_currency.

        Returns:
            {currency_code: units of that currency per 1 base unit}

        Raises:
            ExchangeRateError: If the provider cannot deliver rates
        """
        pass


class ExchangeRateError(Exception):
    """The provider could not deliver a rate table."""
    pass
