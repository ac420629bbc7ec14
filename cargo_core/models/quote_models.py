"""Quote-related data models: inbound requests and priced results."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cargo_core.config.messages import ERROR_INVALID_QUOTE_REQUEST
from cargo_core.exceptions import InvalidInputError
from cargo_core.models.schema import ServiceLevel, WeightTier
from cargo_core.models.utils import to_cm, to_kg


WeightUnit = Literal["kg", "g", "lb", "lbs", "pound", "pounds"]
LengthUnit = Literal["cm", "mm", "m", "meter", "metre", "in", "inch", "inches"]


class Address(BaseModel):
    """Postal address as far as rating needs it.

    Attributes:
        country: Country as ISO-2 code or common name ("DE", "Germany")
        postal_code: Postal code (optional)
        city: City name (optional)
        line1: Street line (optional, only kept for bookings)
    """
    model_config = ConfigDict(frozen=True)

    country: str = Field(min_length=1, description="Country code or name")
    postal_code: Optional[str] = Field(None, description="Postal code")
    city: Optional[str] = Field(None, description="City name")
    line1: Optional[str] = Field(None, description="Street line")

    @field_validator("country")
    @classmethod
    def _strip_country(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("country is required")
        return value

    @field_validator("postal_code", "city", "line1", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class Dimensions(BaseModel):
    """Per-piece dimensions in centimetres (L x W x H)."""
    model_config = ConfigDict(frozen=True)

    length: float = Field(default=0.0, description="Length in cm")
    width: float = Field(default=0.0, description="Width in cm")
    height: float = Field(default=0.0, description="Height in cm")

    @field_validator("length", "width", "height", mode="before")
    @classmethod
    def _missing_as_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def volume_cm3(self) -> float:
        # negative inputs count as zero
        return max(0.0, self.length) * max(0.0, self.width) * max(0.0, self.height)


class QuoteRequest(BaseModel):
    """Inbound "get a price" request.

    Weight and dimensions may be given in any supported unit; they are
    normalized to kg and cm by ``weight_kg`` and ``dimensions_cm`` before they
    reach the rating engine.

    Attributes:
        origin: Pickup address
        destination: Delivery address
        weight: Weight per piece in ``weight_unit``
        weight_unit: kg, g or lb
        dimensions: Per-piece dimensions in ``dims_unit``
        dims_unit: cm, mm, m or in
        quantity: Number of identical pieces (>= 1)
        service_level: Forced service level; None picks the cheapest
    """
    origin: Address
    destination: Address
    weight: float = Field(gt=0, description="Weight per piece")
    weight_unit: WeightUnit = Field(default="kg")
    dimensions: Dimensions = Field(default_factory=Dimensions)
    dims_unit: LengthUnit = Field(default="cm")
    quantity: int = Field(default=1, ge=1, description="Number of pieces")
    service_level: Optional[ServiceLevel] = Field(None, description="Forced service level")

    @field_validator("weight_unit", "dims_unit", "service_level", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("dimensions")
    @classmethod
    def _non_negative_dims(cls, value: Dimensions) -> Dimensions:
        if min(value.length, value.width, value.height) < 0:
            raise ValueError("dimensions L, W, H must be numbers >= 0")
        return value

    @property
    def weight_kg(self) -> float:
        return to_kg(self.weight, self.weight_unit)

    @property
    def dimensions_cm(self) -> Dimensions:
        return Dimensions(
            length=to_cm(self.dimensions.length, self.dims_unit),
            width=to_cm(self.dimensions.width, self.dims_unit),
            height=to_cm(self.dimensions.height, self.dims_unit),
        )


class ConsignmentQuoteRequest(QuoteRequest):
    """Quote request built from booked contents.

    Content items may omit their weight, so the per-piece weight can be 0 and
    the consignment is then rated on volumetric weight alone.
    """
    weight: float = Field(ge=0, description="Weight per piece")


def _validation_details(error: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
        for item in error.errors()
    ]


def _first_present(raw: Dict[str, Any], *keys: str) -> Any:
    # missing or null sides count as zero
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return 0


def parse_quote_request(payload: Dict[str, Any]) -> QuoteRequest:
    """Validate a raw quote payload.

    Accepts the common aliases of the public API: ``weightKg``/``weight_kg`` for
    the weight, ``dims``/``dimsCm``/``dimensions`` with ``L``/``W``/``H`` or
    spelled-out keys for the dimensions.

    Args:
        payload: Raw request body

    Returns:
        Validated QuoteRequest

    Raises:
        InvalidInputError: With one detail entry per invalid field
    """
    body = dict(payload or {})
    if "weight" not in body:
        for alias in ("weight_kg", "weightKg"):
            if alias in body:
                body["weight"] = body.pop(alias)
                break
    for alias in ("weightUnit",):
        if alias in body:
            body["weight_unit"] = body.pop(alias)
    for alias in ("dimsUnit",):
        if alias in body:
            body["dims_unit"] = body.pop(alias)
    if "serviceLevel" in body:
        body["service_level"] = body.pop("serviceLevel")

    raw_dims = None
    for alias in ("dimensions", "dims_cm", "dimsCm", "dims"):
        if alias in body:
            value = body.pop(alias)
            if raw_dims is None:
                raw_dims = value
    if isinstance(raw_dims, dict):
        body["dimensions"] = {
            "length": _first_present(raw_dims, "L", "length", "l"),
            "width": _first_present(raw_dims, "W", "width", "w"),
            "height": _first_present(raw_dims, "H", "height", "h"),
        }
    elif raw_dims is not None:
        body["dimensions"] = raw_dims

    for side in ("origin", "destination"):
        address = body.get(side)
        if isinstance(address, dict) and "postalCode" in address:
            address = dict(address)
            address["postal_code"] = address.pop("postalCode")
            body[side] = address

    try:
        return QuoteRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidInputError(ERROR_INVALID_QUOTE_REQUEST, _validation_details(e)) from e


class PricingOptions(BaseModel):
    """Options applied when pricing a rate card.

    Attributes:
        apply_vat: Add VAT on top of the subtotal
        vat_pct: VAT percentage
        is_remote: Apply the remote-area surcharge
        money_rounding_decimals: Decimals kept on money fields
        currency_fallback: Currency used when a card carries none
    """
    model_config = ConfigDict(frozen=True)

    apply_vat: bool = False
    vat_pct: float = Field(default=0.0, ge=0)
    is_remote: bool = False
    money_rounding_decimals: int = Field(default=2, ge=0)
    currency_fallback: str = "EUR"


class PriceBreakdown(BaseModel):
    """Rounded cost components of a priced quote."""
    model_config = ConfigDict(frozen=True)

    base: float
    weight: float
    fuel: float
    remote: float
    subtotal_before_vat: float
    vat: float
    total: float


class PricedQuote(BaseModel):
    """Result of pricing a single rate card for a billable weight."""
    model_config = ConfigDict(frozen=True)

    currency: str
    total: float
    breakdown: PriceBreakdown
    tier: WeightTier
    service_level: ServiceLevel
    origin_zone: str
    destination_zone: str
    transit_days: Optional[int] = None
    notes: str = ""
    minimum_charge_applied: bool = False


class WeightBreakdown(BaseModel):
    """Actual, volumetric and billable weight of a consignment in kg."""
    model_config = ConfigDict(frozen=True)

    actual_total_kg: float
    volumetric_kg: float
    billable_kg: float


class Quote(BaseModel):
    """A complete quote: price, weights, zones and delivery estimate.

    Produced fresh for every pricing request. A booked shipment keeps a frozen
    copy that is never recomputed.
    """
    model_config = ConfigDict(frozen=True)

    currency: str
    total: float
    breakdown: PriceBreakdown
    actual_weight_kg: float
    volumetric_weight_kg: float
    billable_weight_kg: float
    service_level: ServiceLevel
    origin: Address
    destination: Address
    origin_zone: str
    destination_zone: str
    is_remote: bool = False
    transit_days: int
    eta: datetime
    notes: str = ""
    minimum_charge_applied: bool = False
    quoted_at: Optional[datetime] = None

    def to_response(self) -> Dict[str, Any]:
        """Convert to the outbound quote response (JSON-compatible, ISO-8601 ETA)."""
        return self.model_dump(mode="json")

