"""Typed rows returned by the report query functions."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScoreAverages(_Row):
    avg_overall: Optional[float] = None
    avg_cleanliness: Optional[float] = None
    avg_location: Optional[float] = None
    avg_value: Optional[float] = None
    avg_accuracy: Optional[float] = None
    avg_communication: Optional[float] = None


class CityPriceRank(_Row):
    rank: int = Field(ge=1)
    city: str
    average_price_usd: float
    listing_count: int = 0


class PropertyTypePrice(_Row):
    city: str
    property_type: str
    average_price_usd: Optional[float] = None
    listing_count: int = 0
    rank: int = Field(ge=1)


class PriceDelta(_Row):
    entire_average_usd: Optional[float] = None
    room_average_usd: Optional[float] = None
    price_difference: float = 0.0


class CategoryScores(ScoreAverages):
    category_label: str
    review_count: int = 0


class CityScores(ScoreAverages):
    city: str
    review_count: int = 0


class PriceTierScores(_Row):
    city: str
    overall_score_above_avg: float = 0.0
    overall_score_below_avg: float = 0.0
    accuracy_above_avg: float = 0.0
    accuracy_below_avg: float = 0.0
    cleanliness_above_avg: float = 0.0
    cleanliness_below_avg: float = 0.0
    communication_above_avg: float = 0.0
    communication_below_avg: float = 0.0
    location_above_avg: float = 0.0
    location_below_avg: float = 0.0
    value_above_avg: float = 0.0
    value_below_avg: float = 0.0
    rows_above: int = 0
    rows_below: int = 0


class MarketCompetitiveness(_Row):
    city: str
    total_listings: int
    average_price_usd: float = 0.0
    average_rating: float = 0.0


class VerificationScores(ScoreAverages):
    verification_status: str
    review_count: int = 0


__all__ = [
    "CategoryScores",
    "CityPriceRank",
    "CityScores",
    "MarketCompetitiveness",
    "PriceDelta",
    "PriceTierScores",
    "PropertyTypePrice",
    "ScoreAverages",
    "VerificationScores",
]
