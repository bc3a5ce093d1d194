"""
Money and time formatting for display, plus snapshot currency conversion.

Formatting follows CLDR en-US rules through Babel, so each currency
gets its own symbol and minor-unit precision ("$1,234.50", "¥1,235").
"""

from decimal import Decimal

from babel.numbers import format_currency as babel_format_currency

from freelance_core.invoicing.calculator import Number, to_decimal
from freelance_core.models.app_settings import AppSettings


DISPLAY_LOCALE = "en_US"


class ExchangeRateUnavailableError(ValueError):
    """The stored rate snapshot has no rate for a requested currency."""
    pass


def format_currency(amount: Number, currency_code: str = "USD") -> str:
    """Format amount in currency_code, e.g. format_currency(1234.5) -> "$1,234.50"."""
    return babel_format_currency(
        to_decimal(amount),
        currency_code.upper(),
        locale=DISPLAY_LOCALE,
    )


def format_duration(minutes: int) -> str:
    """Format minutes as "<h>h <m>m", e.g. 90 -> "1h 30m"."""
    minutes = int(minutes)
    if minutes < 0:
        raise ValueError(f"Duration cannot be negative: {minutes}")
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"


def _rate_for(code: str, settings: AppSettings) -> Decimal:
    if code == settings.currency:
        return Decimal(1)
    try:
        rate = settings.exchange_rates[code]
    except KeyError:
        raise ExchangeRateUnavailableError(
            f"No stored rate for {code} (base {settings.currency})"
        )
    if rate <= 0:
        raise ExchangeRateUnavailableError(f"Stored rate for {code} is not positive: {rate}")
    return rate


def convert_amount(
    amount: Number,
    from_currency: str,
    to_currency: str,
    settings: AppSettings,
) -> Decimal:
    """
    Convert between two currencies using the stored rate snapshot.

    Rates are expressed per 1 unit of settings.currency, so the
    conversion goes from_currency -> base -> to_currency. The snapshot
    may be stale; no freshness check is made.
    """
    from_code = from_currency.upper()
    to_code = to_currency.upper()
    value = to_decimal(amount)
    if from_code == to_code:
        return value
    return value / _rate_for(from_code, settings) * _rate_for(to_code, settings)
