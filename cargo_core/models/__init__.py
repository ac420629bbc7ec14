"""Data models for the cargo shipping core."""

from cargo_core.models.schema import (
    ServiceLevel,
    WeightTier,
    Tariff,
    RateCardDatabase,
)
from cargo_core.models.quote_models import (
    Address,
    Dimensions,
    QuoteRequest,
    PricingOptions,
    PriceBreakdown,
    PricedQuote,
    WeightBreakdown,
    Quote,
    parse_quote_request,
)
from cargo_core.models.shipment import (
    ShipmentStatus,
    ScanLocation,
    Actor,
    ScanEvent,
    ScanSubmission,
    ScanInput,
    Price,
    Party,
    ContentItem,
    BookingRequest,
    Shipment,
    TrackingPayload,
    ScanPage,
)

__all__ = [
    # Rate card models
    "ServiceLevel",
    "WeightTier",
    "Tariff",
    "RateCardDatabase",
    # Quote models
    "Address",
    "Dimensions",
    "QuoteRequest",
    "PricingOptions",
    "PriceBreakdown",
    "PricedQuote",
    "WeightBreakdown",
    "Quote",
    "parse_quote_request",
    # Shipment models
    "ShipmentStatus",
    "ScanLocation",
    "Actor",
    "ScanEvent",
    "ScanSubmission",
    "ScanInput",
    "Price",
    "Party",
    "ContentItem",
    "BookingRequest",
    "Shipment",
    "TrackingPayload",
    "ScanPage",
]
