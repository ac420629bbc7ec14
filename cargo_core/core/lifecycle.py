"""Shipment lifecycle state machine: transition rules and scan application."""

from datetime import datetime, timezone
from typing import Optional, Tuple, Union

from cargo_core.config.logging_config import get_logger
from cargo_core.config.messages import (
    ERROR_UNSUPPORTED_STATUS,
    REASON_CANCELED_NOT_SCANNABLE,
    REASON_DELIVERED_IS_FINAL,
    REASON_NOT_FORWARD,
    REASON_UNKNOWN_STATUS,
)
from cargo_core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    MissingStatusError,
    StaleScanTimestampError,
)
from cargo_core.models.shipment import ScanEvent, ScanInput, Shipment, ShipmentStatus

logger = get_logger(__name__)


# Ordered milestones; the index is the ordinal used for forward-only checks
MILESTONES: Tuple[ShipmentStatus, ...] = (
    ShipmentStatus.BOOKED,
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.AT_HUB,
    ShipmentStatus.OUT_FOR_DELIVERY,
    ShipmentStatus.DELIVERED,
)

MILESTONE_ORDINAL = {status: index for index, status in enumerate(MILESTONES)}

# Entered from any status except the terminal one
EXCEPTION_STATES = frozenset({ShipmentStatus.EXCEPTION})
TERMINAL_STATES = frozenset({ShipmentStatus.DELIVERED})
# Legacy states scans can never move a shipment into
UNREACHABLE_BY_SCAN = frozenset({ShipmentStatus.CANCELED})

# Legacy scan types accepted at the scan endpoint
LEGACY_TO_STATUS = {
    "INTAKE": ShipmentStatus.PICKED_UP,
    "BAGGED": ShipmentStatus.IN_TRANSIT,
    "LOADED": ShipmentStatus.IN_TRANSIT,
    "UNLOADED": ShipmentStatus.AT_HUB,
    "ARRIVED_HUB": ShipmentStatus.AT_HUB,
    "CUSTOMS_IN": ShipmentStatus.IN_TRANSIT,
    "CUSTOMS_OUT": ShipmentStatus.IN_TRANSIT,
    "RETURNED": ShipmentStatus.EXCEPTION,
    "DAMAGED": ShipmentStatus.EXCEPTION,
    "LOST": ShipmentStatus.EXCEPTION,
    "HOLD": ShipmentStatus.EXCEPTION,
}


def normalize_scan_status(raw: Optional[Union[str, ShipmentStatus]]) -> ShipmentStatus:
    """Map a canonical status or legacy scan type to a ShipmentStatus.

    Args:
        raw: Status name or legacy type, case-insensitive

    Returns:
        The canonical ShipmentStatus

    Raises:
        MissingStatusError: If ``raw`` is empty
        InvalidInputError: If ``raw`` is neither a status nor a legacy type
    """
    if isinstance(raw, ShipmentStatus):
        return raw
    value = str(raw or "").strip().upper()
    if not value:
        raise MissingStatusError()
    if value in LEGACY_TO_STATUS:
        return LEGACY_TO_STATUS[value]
    try:
        return ShipmentStatus(value)
    except ValueError:
        message = ERROR_UNSUPPORTED_STATUS.format(status=value)
        raise InvalidInputError(message, [{"field": "status", "message": message}]) from None


def can_transition(
    current: Optional[ShipmentStatus],
    proposed: ShipmentStatus,
    admin_override: bool = False
) -> Tuple[bool, str]:
    """Check a proposed status change against the transition table.

    Rules, in order:
    - admin override always allows the change
    - EXCEPTION is allowed unless the shipment is delivered
    - CANCELED is never reachable by scans
    - otherwise both statuses must be milestones, the current one not
      DELIVERED, and the proposed ordinal strictly greater (skips allowed)

    A shipment without a status yet accepts any milestone.

    Args:
        current: Current status (None for a shipment with no status yet)
        proposed: Proposed status
        admin_override: Bypass the rules

    Returns:
        (allowed, reason) where reason is empty when allowed
    """
    if admin_override:
        return True, ""

    if proposed in EXCEPTION_STATES:
        if current in TERMINAL_STATES:
            return False, REASON_DELIVERED_IS_FINAL
        return True, ""

    if proposed in UNREACHABLE_BY_SCAN:
        return False, REASON_CANCELED_NOT_SCANNABLE

    if current in TERMINAL_STATES:
        return False, REASON_DELIVERED_IS_FINAL

    if proposed not in MILESTONE_ORDINAL:
        return False, REASON_UNKNOWN_STATUS
    if current is None:
        return True, ""
    if current not in MILESTONE_ORDINAL:
        return False, REASON_UNKNOWN_STATUS

    if MILESTONE_ORDINAL[proposed] <= MILESTONE_ORDINAL[current]:
        return False, REASON_NOT_FORWARD
    return True, ""


def check_transition(
    current: Optional[ShipmentStatus],
    proposed: ShipmentStatus,
    admin_override: bool = False
) -> None:
    """Raise InvalidTransitionError if ``current -> proposed`` is not allowed."""
    allowed, reason = can_transition(current, proposed, admin_override)
    if not allowed:
        raise InvalidTransitionError(
            current.value if current is not None else None,
            proposed.value,
            reason,
        )


def apply_scan(
    shipment: Shipment,
    scan_input: ScanInput,
    admin_override: bool = False,
    now: Optional[datetime] = None
) -> Shipment:
    """Validate a scan and append it to a copy of the shipment.

    All checks run before anything changes, so a rejected scan leaves no
    partial state. The stale-timestamp check applies even with admin override.

    Args:
        shipment: Current shipment (not modified)
        scan_input: Normalized scan
        admin_override: Skip the transition rules
        now: Server-assigned scan time (defaults to the current UTC time)

    Returns:
        Updated copy of the shipment

    Raises:
        MissingStatusError: If the scan has no status
        InvalidTransitionError: If the transition is not allowed
        StaleScanTimestampError: If ``now`` is not after the last scan time
    """
    if scan_input.status is None:
        raise MissingStatusError()

    check_transition(shipment.status, scan_input.status, admin_override)

    now = now or datetime.now(timezone.utc)
    if shipment.last_scan_at is not None and now <= shipment.last_scan_at:
        raise StaleScanTimestampError(now, shipment.last_scan_at)

    event = ScanEvent(
        status=scan_input.status,
        created_at=now,
        location=scan_input.location,
        note=scan_input.note,
        actor=scan_input.actor,
        photo_ref=scan_input.photo_ref,
    )

    updated = shipment.model_copy(deep=True)
    updated.scans.append(event)
    updated.status = event.status
    updated.last_scan_at = now
    if event.status == ShipmentStatus.DELIVERED and updated.delivered_at is None:
        updated.delivered_at = now

    logger.debug(f"Scan {event.id} applied to {shipment.ref}: {shipment.status.value} -> {event.status.value}")
    return updated


def recompute_from_history(shipment: Shipment) -> Shipment:
    """Derive status, last-scan and delivered times from the scan history.

    Used after administrative edits; the transition rules are not re-run.

    Args:
        shipment: Shipment with an edited scan history (not modified)

    Returns:
        Updated copy of the shipment with scans sorted by time
    """
    updated = shipment.model_copy(deep=True)
    updated.scans = updated.sorted_scans()

    if not updated.scans:
        updated.status = ShipmentStatus.BOOKED
        updated.last_scan_at = None
        updated.delivered_at = None
        return updated

    last = updated.scans[-1]
    updated.status = last.status
    updated.last_scan_at = last.created_at
    delivered = next((s for s in updated.scans if s.status == ShipmentStatus.DELIVERED), None)
    updated.delivered_at = delivered.created_at if delivered else None
    return updated
