"""Exception hierarchy for the rating engine and the shipment lifecycle.

Every error carries a ``status_code`` hint so an HTTP layer can map it
without inspecting messages: 4xx for caller-correctable conditions,
500 for configuration bugs in rate card data.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from cargo_core.config.messages import (
    ERROR_CONCURRENT_UPDATE,
    ERROR_DUPLICATE_REFERENCE,
    ERROR_INVALID_TRANSIT_DAYS,
    ERROR_MISSING_STATUS,
    ERROR_NO_MATCHING_SERVICE_LEVEL,
    ERROR_NO_RATE_CARDS,
    ERROR_NO_RATES_FOR_LANE,
    ERROR_NO_TIER_FOUND,
    ERROR_SCAN_NOT_FOUND,
    ERROR_SHIPMENT_NOT_FOUND,
    ERROR_STALE_SCAN,
    ERROR_TRANSITION_NOT_ALLOWED,
)


class CargoCoreError(Exception):
    """Base class for all errors raised by the core."""

    status_code: int = 500


# ========== Input ==========

class InvalidInputError(CargoCoreError, ValueError):
    """Malformed quote, booking or scan request. Not retryable as-is.

    Attributes:
        details: Field-level problems as ``{"field": ..., "message": ...}`` dicts
    """

    status_code = 422

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class MissingStatusError(InvalidInputError):
    """A scan was submitted without a status."""

    status_code = 400

    def __init__(self):
        super().__init__(ERROR_MISSING_STATUS, [{"field": "status", "message": ERROR_MISSING_STATUS}])


# ========== Rating ==========

class RatingUnavailableError(CargoCoreError):
    """Business-rule miss: the route or weight cannot be priced."""

    status_code = 422


class NoRateCardsAvailableError(RatingUnavailableError):
    """The candidate tariff list was empty."""

    def __init__(self, message: str = ERROR_NO_RATE_CARDS):
        super().__init__(message)


class NoRatesForLaneError(NoRateCardsAvailableError):
    """The rate repository returned nothing for the resolved zone pair."""

    def __init__(self, origin_zone: str, destination_zone: str):
        super().__init__(
            ERROR_NO_RATES_FOR_LANE.format(origin_zone=origin_zone, destination_zone=destination_zone)
        )
        self.origin_zone = origin_zone
        self.destination_zone = destination_zone


class NoMatchingServiceLevelError(RatingUnavailableError):
    def __init__(self, service_level: str):
        super().__init__(ERROR_NO_MATCHING_SERVICE_LEVEL.format(service_level=service_level))
        self.service_level = service_level


class NoTierFoundError(RatingUnavailableError):
    def __init__(self):
        super().__init__(ERROR_NO_TIER_FOUND)


# ========== Rate card configuration ==========

class RateCardConfigurationError(CargoCoreError, ValueError):
    """Rate card or ETA configuration is invalid; indicates an upstream data bug."""

    status_code = 500


class InvalidTierError(RateCardConfigurationError):
    """Tiers are empty, inverted or overlapping."""


class InvalidTransitDaysError(RateCardConfigurationError):
    def __init__(self, value: Any):
        super().__init__(f"{ERROR_INVALID_TRANSIT_DAYS} (got {value!r})")
        self.value = value


# ========== Lifecycle ==========

class InvalidTransitionError(CargoCoreError):
    """A proposed status change was rejected by the transition table."""

    status_code = 400

    def __init__(self, current: Optional[str], proposed: str, reason: str):
        super().__init__(
            ERROR_TRANSITION_NOT_ALLOWED.format(current=current or "null", proposed=proposed, reason=reason)
        )
        self.current = current
        self.proposed = proposed
        self.reason = reason


class StaleScanTimestampError(CargoCoreError):
    """The server clock did not advance past the last scan; retry shortly."""

    status_code = 409

    def __init__(self, now: datetime, last_scan_at: datetime):
        super().__init__(ERROR_STALE_SCAN.format(now=now.isoformat(), last_scan_at=last_scan_at.isoformat()))
        self.now = now
        self.last_scan_at = last_scan_at


class ConcurrentUpdateError(CargoCoreError):
    status_code = 409

    def __init__(self, ref: str, expected: int, actual: int):
        super().__init__(ERROR_CONCURRENT_UPDATE.format(ref=ref, expected=expected, actual=actual))
        self.ref = ref


class DuplicateReferenceError(CargoCoreError):
    status_code = 409

    def __init__(self, ref: str):
        super().__init__(ERROR_DUPLICATE_REFERENCE.format(ref=ref))
        self.ref = ref


class ShipmentNotFoundError(CargoCoreError):
    status_code = 404

    def __init__(self, ref: str):
        super().__init__(ERROR_SHIPMENT_NOT_FOUND.format(ref=ref))
        self.ref = ref


class ScanNotFoundError(CargoCoreError):
    status_code = 404

    def __init__(self, scan_id: str):
        super().__init__(ERROR_SCAN_NOT_FOUND.format(scan_id=scan_id))
        self.scan_id = scan_id


class PermissionDeniedError(CargoCoreError):
    """The acting role may not perform an administrative operation."""

    status_code = 403
