"""Unit tests for the public tracking payload."""

from datetime import datetime, timedelta, timezone

from cargo_core.core.lifecycle import MILESTONES
from cargo_core.core.tracking import build_tracking_payload
from cargo_core.models.quote_models import Address, PriceBreakdown, Quote
from cargo_core.models.shipment import (
    Actor,
    ScanEvent,
    ScanLocation,
    Shipment,
    ShipmentStatus as S,
)


T0 = datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc)


def make_quote():
    breakdown = PriceBreakdown(
        base=3.0, weight=16.8, fuel=2.38, remote=0.0, subtotal_before_vat=22.18, vat=0.0, total=22.18
    )
    return Quote(
        currency="EUR",
        total=22.18,
        breakdown=breakdown,
        actual_weight_kg=4.0,
        volumetric_weight_kg=1.2,
        billable_weight_kg=4.0,
        service_level="standard",
        origin=Address(country="DE", postal_code="20095", city="Hamburg"),
        destination=Address(country="FR", postal_code="69001", city="Lyon"),
        origin_zone="EU1",
        destination_zone="EU1",
        transit_days=1,
        eta=T0 + timedelta(days=1),
    )


class TestBuildTrackingPayload:
    """Test build_tracking_payload."""

    def test_booked_shipment(self, booked_shipment):
        """Test a shipment without quote or scans."""
        payload = build_tracking_payload(booked_shipment)

        assert payload.ref == "SHP-20251001-0001"
        assert payload.status == S.BOOKED
        assert payload.timeline == []
        assert payload.estimated_delivery is None
        assert payload.delivered_at is None
        assert payload.progress.current_index == 0
        assert payload.progress.milestones == list(MILESTONES)

    def test_items_summary(self, booked_shipment):
        """Test item count, quantity and weight (per-piece weight x quantity)."""
        summary = build_tracking_payload(booked_shipment).items_summary
        assert summary.item_count == 2
        assert summary.total_qty == 3
        assert summary.total_weight_kg == 4.0

    def test_locations_from_parties(self, booked_shipment):
        """Test origin and destination fall back to sender and receiver."""
        payload = build_tracking_payload(booked_shipment)
        assert payload.origin.city == "Berlin"
        assert payload.origin.postal_code == "10115"
        assert payload.destination.city == "Paris"
        assert payload.destination.country == "FR"

    def test_locations_from_quote(self, booked_shipment):
        """Test the frozen quote takes precedence over the parties."""
        shipment = booked_shipment.model_copy(update={"quote": make_quote()})
        payload = build_tracking_payload(shipment)

        assert payload.origin.city == "Hamburg"
        assert payload.destination.city == "Lyon"
        assert payload.estimated_delivery == T0 + timedelta(days=1)

    def test_no_addresses(self):
        """Test a bare shipment has empty locations."""
        payload = build_tracking_payload(Shipment(ref="SHP-X"))
        assert payload.origin.city is None
        assert payload.items_summary.total_qty == 0
        assert payload.items_summary.total_weight_kg == 0.0

    def test_timeline(self, booked_shipment):
        """Test the timeline is chronological and exposes only actor roles."""
        scans = [
            ScanEvent(
                status=S.IN_TRANSIT,
                created_at=T0 + timedelta(hours=2),
                actor=Actor(user_id="secret-user", role="driver"),
                location=ScanLocation(city="Frankfurt"),
            ),
            ScanEvent(status=S.PICKED_UP, created_at=T0, note="collected"),
        ]
        shipment = booked_shipment.model_copy(update={"scans": scans, "status": S.IN_TRANSIT})
        payload = build_tracking_payload(shipment)

        assert [entry.status for entry in payload.timeline] == [S.PICKED_UP, S.IN_TRANSIT]
        assert payload.timeline[0].note == "collected"
        assert payload.timeline[0].actor is None
        assert payload.timeline[1].note == ""
        assert payload.timeline[1].actor.role == "driver"
        assert payload.timeline[1].location.city == "Frankfurt"
        assert "secret-user" not in payload.model_dump_json()

    def test_progress_index(self, booked_shipment):
        """Test the milestone index for milestones and non-milestones."""
        for status, index in ((S.AT_HUB, 3), (S.DELIVERED, 5), (S.EXCEPTION, 0), (S.CANCELED, 0)):
            shipment = booked_shipment.model_copy(update={"status": status})
            assert build_tracking_payload(shipment).progress.current_index == index

    def test_delivered_at(self, booked_shipment):
        """Test the delivered time is passed through."""
        shipment = booked_shipment.model_copy(update={"status": S.DELIVERED, "delivered_at": T0})
        assert build_tracking_payload(shipment).delivered_at == T0
