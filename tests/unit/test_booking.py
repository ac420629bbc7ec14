"""Unit tests for shipment booking and reference generation."""

from datetime import datetime, timezone

import pytest

from cargo_core.core.booking import BookingService, ReferenceGenerator
from cargo_core.core.pricing import PricingEngine
from cargo_core.core.workflow import QuoteWorkflow
from cargo_core.core.zones import DEFAULT_ZONE_TABLE, ZoneResolver
from cargo_core.exceptions import DuplicateReferenceError, InvalidInputError, NoRatesForLaneError
from cargo_core.models.quote_models import PricingOptions
from cargo_core.models.schema import ServiceLevel
from cargo_core.models.shipment import BookingRequest, ShipmentStatus
from tests.test_fixtures import create_booked_shipment, create_booking_payload


NOW = datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def workflow(rate_repository, settings):
    """Quote workflow over the sample rate cards, without VAT."""
    return QuoteWorkflow(
        rate_repository=rate_repository,
        zone_resolver=ZoneResolver(DEFAULT_ZONE_TABLE),
        pricing_engine=PricingEngine(PricingOptions()),
        settings=settings,
    )


@pytest.fixture
def booking(shipment_store, workflow, settings, clock):
    """Booking service writing to an empty store."""
    return BookingService(shipment_store, workflow, settings=settings, clock=clock)


class FixedReferences:
    """Reference generator that always hands out the same reference."""

    def __init__(self, ref):
        self.ref = ref
        self.calls = 0

    def next_ref(self, now=None):
        self.calls += 1
        return self.ref


class TestReferenceGenerator:
    """Test ReferenceGenerator."""

    def test_format(self):
        """Test the prefix-date-sequence format."""
        assert ReferenceGenerator.format_ref("SHP", "20251001", 7) == "SHP-20251001-0007"
        assert ReferenceGenerator.format_ref("SHP", "20251001", 12345) == "SHP-20251001-12345"

    def test_daily_sequence(self, shipment_store):
        """Test the sequence increments per day."""
        generator = ReferenceGenerator(shipment_store)
        assert generator.next_ref(NOW) == "SHP-20251001-0001"
        assert generator.next_ref(NOW) == "SHP-20251001-0002"
        assert generator.next_ref(datetime(2025, 10, 2, tzinfo=timezone.utc)) == "SHP-20251002-0001"

    def test_local_day(self, shipment_store):
        """Test the day is taken in the configured timezone."""
        generator = ReferenceGenerator(shipment_store, prefix="CGO", tz="Europe/Berlin")
        late_evening_utc = datetime(2025, 9, 30, 23, 30, tzinfo=timezone.utc)
        assert generator.next_ref(late_evening_utc) == "CGO-20251001-0001"

    def test_shared_counter(self, shipment_store):
        """Test generators on the same store share the counter."""
        ReferenceGenerator(shipment_store).next_ref(NOW)
        assert ReferenceGenerator(shipment_store).next_ref(NOW) == "SHP-20251001-0002"


class TestBookingService:
    """Test BookingService.book."""

    def test_book(self, booking, shipment_store, clock):
        """Test a booking creates a BOOKED shipment with a frozen quote."""
        shipment = booking.book(create_booking_payload(), created_by="user-1")

        assert shipment.ref == "SHP-20251001-0001"
        assert shipment.status == ShipmentStatus.BOOKED
        assert shipment.scans == []
        assert shipment.created_at == clock.now
        assert shipment.created_by == "user-1"
        assert shipment.service_level == ServiceLevel.STANDARD

        assert shipment.quote.billable_weight_kg == 4.0
        assert shipment.quote.total == 22.18
        assert shipment.price.amount == 22.18
        assert shipment.price.currency == "EUR"
        assert shipment.quote.eta == datetime(2025, 10, 2, 9, 0, tzinfo=timezone.utc)

        assert shipment_store.get(shipment.ref).quote == shipment.quote

    def test_accepts_model(self, booking):
        """Test a BookingRequest model is accepted."""
        request = BookingRequest.model_validate(create_booking_payload())
        assert booking.book(request, now=NOW).ref == "SHP-20251001-0001"

    def test_sequential_refs(self, booking):
        """Test consecutive bookings on one day get consecutive refs."""
        first = booking.book(create_booking_payload())
        second = booking.book(create_booking_payload())
        assert first.ref == "SHP-20251001-0001"
        assert second.ref == "SHP-20251001-0002"

    def test_default_service_level_from_settings(self, booking):
        """Test bookings without a level use the configured default."""
        payload = create_booking_payload()
        del payload["service_level"]
        shipment = booking.book(payload)
        assert shipment.service_level == ServiceLevel.STANDARD

    def test_requested_service_level(self, booking):
        """Test the requested service level is quoted."""
        shipment = booking.book(create_booking_payload(service_level="express"))
        assert shipment.service_level == ServiceLevel.EXPRESS
        assert shipment.quote.total == 33.06

    def test_retry_on_taken_reference(self, booking, shipment_store):
        """Test a reference that already exists is skipped."""
        shipment_store.create(create_booked_shipment("SHP-20251001-0001"))
        shipment = booking.book(create_booking_payload())
        assert shipment.ref == "SHP-20251001-0002"

    def test_retries_exhausted(self, shipment_store, workflow, settings, clock):
        """Test the duplicate error propagates after the configured retries."""
        shipment_store.create(create_booked_shipment("SHP-FIXED"))
        references = FixedReferences("SHP-FIXED")
        booking = BookingService(
            shipment_store, workflow, settings=settings, reference_generator=references, clock=clock
        )

        with pytest.raises(DuplicateReferenceError):
            booking.book(create_booking_payload())
        assert references.calls == settings.reference_max_retries + 1

    def test_empty_contents(self, booking):
        """Test a booking needs at least one content item."""
        with pytest.raises(InvalidInputError) as exc_info:
            booking.book(create_booking_payload(contents=[]))
        assert exc_info.value.details[0]["field"] == "contents"

    def test_missing_weights(self, booking, shipment_store):
        """Test contents without weight or dimensions cannot be quoted."""
        with pytest.raises(InvalidInputError) as exc_info:
            booking.book(create_booking_payload(contents=[{"description": "Letters", "quantity": 1}]))
        assert exc_info.value.details[0]["field"] == "contents"
        assert shipment_store.all() == []

    def test_dimensions_only(self, booking):
        """Test contents without weight are rated on volumetric weight."""
        shipment = booking.book(create_booking_payload(contents=[
            {"description": "Box", "quantity": 1, "length_cm": 40, "width_cm": 30, "height_cm": 20},
        ]))

        assert shipment.quote.actual_weight_kg == 0
        assert shipment.quote.volumetric_weight_kg == pytest.approx(4.8)
        assert shipment.quote.billable_weight_kg == 5.0
        assert shipment.quote.total == 20.72

    def test_missing_receiver(self, booking):
        """Test a booking without receiver is rejected."""
        payload = create_booking_payload()
        del payload["receiver"]
        with pytest.raises(InvalidInputError):
            booking.book(payload)

    def test_unserved_lane(self, booking, shipment_store):
        """Test a lane without rates fails and creates nothing."""
        payload = create_booking_payload()
        payload["receiver"] = {**payload["receiver"], "address": {"country": "US", "city": "New York"}}
        with pytest.raises(NoRatesForLaneError):
            booking.book(payload)
        assert shipment_store.all() == []


class TestBuildQuoteRequest:
    """Test BookingService.build_quote_request."""

    def test_aggregates_contents(self, booking):
        """Test quantity is summed and weight spread evenly over pieces."""
        request = booking.build_quote_request(BookingRequest.model_validate(create_booking_payload()))

        assert request.quantity == 3
        assert request.weight_kg * request.quantity == pytest.approx(4.0)
        assert request.dimensions.length == 30
        assert request.origin.city == "Berlin"
        assert request.destination.country == "FR"

    def test_first_item_without_dimensions(self, booking):
        """Test no dimensions when the first item lacks them."""
        payload = create_booking_payload(contents=[
            {"description": "Shoes", "quantity": 1, "weight_kg": 1.0},
            {"description": "Box", "quantity": 1, "weight_kg": 2.0, "length_cm": 50, "width_cm": 40, "height_cm": 30},
        ])
        request = booking.build_quote_request(BookingRequest.model_validate(payload))
        assert request.dimensions_cm.volume_cm3 == 0

    def test_zero_weight_with_dimensions(self, booking):
        """Test a weightless item yields a zero per-piece weight with its dimensions."""
        payload = create_booking_payload(contents=[
            {"description": "Box", "quantity": 2, "length_cm": 40, "width_cm": 30, "height_cm": 20},
        ])
        request = booking.build_quote_request(BookingRequest.model_validate(payload))

        assert request.weight_kg == 0
        assert request.quantity == 2
        assert request.dimensions_cm.volume_cm3 == 24000
