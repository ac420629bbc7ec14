"""Rate card data schema - models for deterministic tariff pricing."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cargo_core.models.utils import validate_tiers


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ServiceLevel(str, Enum):
    """Service levels a rate card can be sold under.

    Attributes:
        ECONOMY: Slowest, cheapest service
        STANDARD: Default service for bookings
        EXPRESS: Fastest service
    """
    ECONOMY = "economy"
    STANDARD = "standard"
    EXPRESS = "express"


class WeightTier(BaseModel):
    """Represents a weight band of a rate card.

    A tier matches billable weights in ``[min_kg, max_kg)``. A tier without
    ``max_kg`` is open-ended and matches everything above ``min_kg``.

    Attributes:
        min_kg: Lower bound in kg (inclusive)
        max_kg: Upper bound in kg (exclusive, or None for open-ended)
        price_per_kg: Price charged per billable kg inside this tier
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"min_kg": 0, "max_kg": 5, "price_per_kg": 4.2}
        },
    )

    min_kg: float = Field(ge=0, description="Minimum billable kg (inclusive)")
    max_kg: Optional[float] = Field(None, description="Maximum billable kg (exclusive, None = open-ended)")
    price_per_kg: float = Field(ge=0, description="Price per billable kg")

    @property
    def is_open_ended(self) -> bool:
        return self.max_kg is None

    def contains(self, weight_kg: float) -> bool:
        """Return True if ``weight_kg`` falls inside ``[min_kg, max_kg)``."""
        return weight_kg >= self.min_kg and (self.max_kg is None or weight_kg < self.max_kg)


class Tariff(BaseModel):
    """A rate card: pricing for one lane and service level over a validity window.

    Identified by (service level, origin zone, destination zone, effective from).
    Tariffs are immutable inputs to pricing; the rating engine never changes them.
    Tiers are stored sorted by ``min_kg`` and validated to be contiguous and
    non-overlapping.

    Attributes:
        service_level: Service level this card prices
        origin_zone: Origin tariff zone code (e.g. "EU1")
        destination_zone: Destination tariff zone code
        currency: ISO currency code
        base_fee: Fixed fee added to every shipment
        min_charge: Floor applied to the subtotal after surcharges
        tiers: Weight tiers, sorted ascending by min_kg
        volumetric_divisor: Divisor the carrier uses for volumetric weight
        fuel_surcharge_pct: Fuel surcharge as a percentage of base fee + weight charge
        remote_area_surcharge_pct: Remote-area surcharge, same base as fuel
        transit_days: Transit days for this lane, None to fall back to the lane table
        effective_from: Start of validity (inclusive)
        effective_to: End of validity (inclusive, None = open)
        is_active: Inactive cards are never offered
        notes: Free text copied onto quotes
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "service_level": "standard",
                "origin_zone": "EU1",
                "destination_zone": "EU1",
                "currency": "EUR",
                "base_fee": 3.0,
                "min_charge": 10.0,
                "tiers": [
                    {"min_kg": 0, "max_kg": 5, "price_per_kg": 4.2},
                    {"min_kg": 5, "max_kg": 20, "price_per_kg": 3.1},
                    {"min_kg": 20, "max_kg": None, "price_per_kg": 2.4}
                ],
                "fuel_surcharge_pct": 12,
                "remote_area_surcharge_pct": 8,
                "transit_days": 1,
                "notes": "EU domestic standard"
            }
        },
    )

    service_level: ServiceLevel = Field(description="Service level this card prices")
    origin_zone: str = Field(min_length=1, description="Origin tariff zone code")
    destination_zone: str = Field(min_length=1, description="Destination tariff zone code")

    currency: str = Field(default="EUR", description="Currency code")
    base_fee: float = Field(default=0.0, ge=0, description="Fixed fee per shipment")
    min_charge: float = Field(default=0.0, ge=0, description="Minimum subtotal before VAT")

    tiers: List[WeightTier] = Field(description="Weight tiers, sorted ascending by min_kg")

    volumetric_divisor: float = Field(default=5000.0, gt=0, description="Volumetric divisor (cm³ per kg)")
    fuel_surcharge_pct: float = Field(default=0.0, ge=0, description="Fuel surcharge percentage")
    remote_area_surcharge_pct: float = Field(default=0.0, ge=0, description="Remote-area surcharge percentage")

    transit_days: Optional[int] = Field(None, ge=0, description="Transit days for this lane")

    effective_from: datetime = Field(default=EPOCH, description="Start of validity (inclusive)")
    effective_to: Optional[datetime] = Field(None, description="End of validity (inclusive)")

    is_active: bool = Field(default=True, description="Whether the card can be offered")
    notes: str = Field(default="", description="Free text copied onto quotes")

    @field_validator("tiers")
    @classmethod
    def _sort_and_check_tiers(cls, tiers: List[WeightTier]) -> List[WeightTier]:
        return validate_tiers(tiers)

    @field_validator("effective_from", "effective_to")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def key(self) -> tuple:
        """Identity of this card: (service level, origin, destination, effective from)."""
        return (self.service_level, self.origin_zone, self.destination_zone, self.effective_from)

    def is_valid_on(self, as_of: datetime) -> bool:
        """Check activity and the validity window against ``as_of``.

        Args:
            as_of: Instant to check (naive values are read as UTC)

        Returns:
            True if the card is active and ``effective_from <= as_of <= effective_to``
        """
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        if not self.is_active:
            return False
        if self.effective_from > as_of:
            return False
        return self.effective_to is None or self.effective_to >= as_of


class RateCardDatabase(BaseModel):
    """Complete collection of rate cards.

    Container for all rate cards loaded from disk. Provides the lookup used
    by the rate repository.

    Attributes:
        rate_cards: All rate cards
        version: Rate card set version
    """
    rate_cards: List[Tariff] = Field(default_factory=list, description="All rate cards")
    version: str = Field(default="1", description="Rate card set version")

    def get_rate_cards(
        self,
        origin_zone: Optional[str] = None,
        destination_zone: Optional[str] = None,
        service_level: Optional[ServiceLevel] = None
    ) -> List[Tariff]:
        """Get rate cards filtered by lane and/or service level.

        Args:
            origin_zone: Optional origin zone to filter by
            destination_zone: Optional destination zone to filter by
            service_level: Optional service level to filter by

        Returns:
            List of Tariff objects matching the filters.
            If all filters are None, returns all rate cards.
        """
        filtered = self.rate_cards
        if origin_zone:
            filtered = [r for r in filtered if r.origin_zone == origin_zone]
        if destination_zone:
            filtered = [r for r in filtered if r.destination_zone == destination_zone]
        if service_level:
            filtered = [r for r in filtered if r.service_level == ServiceLevel(service_level)]
        return filtered

    def lanes(self) -> List[tuple]:
        """Distinct (origin zone, destination zone) pairs, in first-seen order."""
        seen = []
        for card in self.rate_cards:
            lane = (card.origin_zone, card.destination_zone)
            if lane not in seen:
                seen.append(lane)
        return seen
