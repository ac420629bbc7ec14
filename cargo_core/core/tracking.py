"""Build the public tracking payload of a shipment."""

from typing import Optional

from cargo_core.core.lifecycle import MILESTONE_ORDINAL, MILESTONES
from cargo_core.models.quote_models import Address
from cargo_core.models.shipment import (
    ItemsSummary,
    LocationSummary,
    Party,
    Progress,
    PublicActor,
    Shipment,
    TimelineEntry,
    TrackingPayload,
)
from cargo_core.models.utils import round_money


def _location(quote_address: Optional[Address], party: Optional[Party]) -> LocationSummary:
    address = quote_address if quote_address is not None else (party.address if party else None)
    if address is None:
        return LocationSummary()
    return LocationSummary(
        city=address.city,
        country=address.country,
        postal_code=address.postal_code,
    )


def build_tracking_payload(shipment: Shipment) -> TrackingPayload:
    """Format a shipment for public tracking.

    Origin and destination come from the frozen quote, falling back to the
    sender and receiver addresses. The timeline is chronological and exposes
    actors only by role.

    Args:
        shipment: Shipment to format

    Returns:
        TrackingPayload
    """
    quote = shipment.quote

    total_qty = sum(item.quantity for item in shipment.contents)
    total_weight = sum((item.weight_kg or 0.0) * item.quantity for item in shipment.contents)

    timeline = [
        TimelineEntry(
            id=scan.id,
            status=scan.status,
            created_at=scan.created_at,
            location=scan.location,
            note=scan.note or "",
            actor=PublicActor(role=scan.actor.role) if scan.actor else None,
            photo_ref=scan.photo_ref,
        )
        for scan in shipment.sorted_scans()
    ]

    return TrackingPayload(
        ref=shipment.ref,
        status=shipment.status,
        origin=_location(quote.origin if quote else None, shipment.sender),
        destination=_location(quote.destination if quote else None, shipment.receiver),
        service_level=shipment.service_level,
        items_summary=ItemsSummary(
            item_count=len(shipment.contents),
            total_qty=total_qty,
            total_weight_kg=round_money(total_weight, 2),
        ),
        estimated_delivery=quote.eta if quote else None,
        delivered_at=shipment.delivered_at,
        progress=Progress(
            current_index=MILESTONE_ORDINAL.get(shipment.status, 0),
            milestones=list(MILESTONES),
        ),
        timeline=timeline,
    )
