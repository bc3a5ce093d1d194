"""Exchange-rate provider interface."""

from freelance_core.services.exchange.interface import (
    ExchangeRateError,
    ExchangeRateProvider,
)

__all__ = ["ExchangeRateError", "ExchangeRateProvider"]
