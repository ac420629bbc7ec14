"""Core business logic modules."""

from cargo_core.core.zones import ZoneResolver, ZoneTable, DEFAULT_ZONE_TABLE
from cargo_core.core.weight import compute_billable_weight
from cargo_core.core.pricing import PricingEngine
from cargo_core.core.eta import TransitTable, calculate_eta, DEFAULT_TRANSIT_MAP
from cargo_core.core.repositories import (
    RateRepository,
    ShipmentStore,
    InMemoryRateRepository,
    InMemoryShipmentStore,
)
from cargo_core.core.dataset_loader import RateCardLoader
from cargo_core.core.workflow import QuoteWorkflow, QuoteWorkflowState
from cargo_core.core.lifecycle import (
    apply_scan,
    can_transition,
    check_transition,
    normalize_scan_status,
    recompute_from_history,
)
from cargo_core.core.tracking import build_tracking_payload
from cargo_core.core.scan_service import ScanService
from cargo_core.core.booking import BookingService, ReferenceGenerator

__all__ = [
    "ZoneResolver",
    "ZoneTable",
    "DEFAULT_ZONE_TABLE",
    "compute_billable_weight",
    "PricingEngine",
    "TransitTable",
    "calculate_eta",
    "DEFAULT_TRANSIT_MAP",
    "RateRepository",
    "ShipmentStore",
    "InMemoryRateRepository",
    "InMemoryShipmentStore",
    "RateCardLoader",
    "QuoteWorkflow",
    "QuoteWorkflowState",
    "apply_scan",
    "can_transition",
    "check_transition",
    "normalize_scan_status",
    "recompute_from_history",
    "build_tracking_payload",
    "ScanService",
    "BookingService",
    "ReferenceGenerator",
]
