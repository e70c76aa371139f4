"""Per-city conversion of local listing prices into the reference currency."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

import pandas as pd

_LOGGER = logging.getLogger(__name__)


class UnconvertiblePrice:
    """Sentinel returned when a price has no rate row for its city."""

    _instance = None

    def __new__(cls) -> "UnconvertiblePrice":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNCONVERTIBLE"


UNCONVERTIBLE = UnconvertiblePrice()


def rate_lookup(exchange_rates: pd.DataFrame) -> Dict[str, float]:
    """Return ``{city: rate}`` from the exchange rate relation."""
    return {str(city): float(rate) for city, rate in zip(exchange_rates["city"], exchange_rates["exchange_rate"])}


def convert_price(price: Any, city: Any, rates: Mapping[str, float]) -> Union[float, UnconvertiblePrice]:
    """Return ``price * rate`` for the listing's city, or UNCONVERTIBLE."""
    if price is None or city is None:
        return UNCONVERTIBLE
    try:
        value = float(price)
    except (TypeError, ValueError):
        return UNCONVERTIBLE
    if math.isnan(value):
        return UNCONVERTIBLE
    rate = rates.get(str(city))
    if rate is None:
        return UNCONVERTIBLE
    return value * rate


@dataclass(frozen=True, eq=False)
class ConversionResult:
    """Listings carrying a ``price_usd`` column plus what was left out."""

    frame: pd.DataFrame
    missing_rate: int
    missing_price: int

    @property
    def excluded(self) -> int:
        return self.missing_rate + self.missing_price


def with_usd_price(listings: pd.DataFrame, exchange_rates: pd.DataFrame) -> ConversionResult:
    """
    Inner-join listings to their city's rate and derive ``price_usd``.
    Listings in cities without a rate row, or without a price, are excluded rather than zero-filled.
    """
    rates = exchange_rates[["city", "exchange_rate"]]
    joined = listings.merge(rates, on="city", how="left", validate="many_to_one")
    no_rate = joined["exchange_rate"].isna()
    no_price = ~no_rate & joined["price"].isna()
    converted = joined[~no_rate & ~no_price].copy()
    converted["price_usd"] = converted["price"] * converted["exchange_rate"]

    missing_rate = int(no_rate.sum())
    if missing_rate:
        cities = sorted(joined.loc[no_rate, "city"].unique().tolist())
        _LOGGER.info("[CURRENCY] %d listings have no exchange rate (cities: %s)", missing_rate, cities)
    return ConversionResult(frame=converted.reset_index(drop=True), missing_rate=missing_rate, missing_price=int(no_price.sum()))


__all__ = ["UNCONVERTIBLE", "UnconvertiblePrice", "ConversionResult", "convert_price", "rate_lookup", "with_usd_price"]
