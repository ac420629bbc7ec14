"""Shipment booking: reference codes and frozen quotes."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from cargo_core.config.logging_config import get_logger
from cargo_core.config.messages import ERROR_CONTENTS_WITHOUT_WEIGHT, ERROR_INVALID_BOOKING_REQUEST
from cargo_core.config.settings import Settings, get_settings
from cargo_core.core.repositories import ShipmentStore
from cargo_core.core.workflow import QuoteWorkflow
from cargo_core.exceptions import DuplicateReferenceError, InvalidInputError
from cargo_core.models.quote_models import ConsignmentQuoteRequest, Dimensions, QuoteRequest
from cargo_core.models.shipment import BookingRequest, Price, Shipment, ShipmentStatus

logger = get_logger(__name__)


def _details(error: ValidationError):
    return [
        {"field": ".".join(str(p) for p in item["loc"]), "message": item["msg"]}
        for item in error.errors()
    ]


class ReferenceGenerator:
    """Generate shipment references like ``SHP-20251001-0007`` from a daily counter.

    The day is taken in the configured local timezone; the counter lives in the
    shipment store so it is shared by every generator on the same store.
    """

    def __init__(self, store: ShipmentStore, prefix: str = "SHP", tz: str = "UTC"):
        self.store = store
        self.prefix = prefix
        self.tz = ZoneInfo(tz)

    @staticmethod
    def format_ref(prefix: str, day: str, sequence: int) -> str:
        return f"{prefix}-{day}-{sequence:04d}"

    def next_ref(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        day = now.astimezone(self.tz).strftime("%Y%m%d")
        sequence = self.store.next_sequence("shipment", day)
        return self.format_ref(self.prefix, day, sequence)


class BookingService:
    """Create shipments with a unique reference and a frozen quote."""

    def __init__(
        self,
        store: ShipmentStore,
        workflow: QuoteWorkflow,
        settings: Optional[Settings] = None,
        reference_generator: Optional[ReferenceGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.workflow = workflow
        self.settings = settings or get_settings()
        self.reference_generator = reference_generator or ReferenceGenerator(
            store,
            prefix=self.settings.shipment_ref_prefix,
            tz=self.settings.local_timezone,
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def build_quote_request(self, request: BookingRequest) -> QuoteRequest:
        """Aggregate the content items into a single quote request.

        The consignment is rated as ``total quantity`` pieces of
        ``total weight / total quantity`` kg each, with the first item's
        dimensions when all three are given. Items without a weight are rated
        on volume, so at least the weight or the dimensions must be known.
        """
        quantity = sum(item.quantity for item in request.contents)
        total_weight = sum((item.weight_kg or 0.0) * item.quantity for item in request.contents)

        first = request.contents[0]
        dims = Dimensions()
        if first.has_dimensions:
            dims = Dimensions(length=first.length_cm, width=first.width_cm, height=first.height_cm)

        if total_weight <= 0 and dims.volume_cm3 <= 0:
            raise InvalidInputError(
                ERROR_INVALID_BOOKING_REQUEST,
                [{"field": "contents", "message": ERROR_CONTENTS_WITHOUT_WEIGHT}],
            )

        try:
            return ConsignmentQuoteRequest(
                origin=request.sender.address,
                destination=request.receiver.address,
                weight=total_weight / quantity,
                weight_unit="kg",
                dimensions=dims,
                dims_unit="cm",
                quantity=quantity,
                service_level=request.service_level or self.settings.default_service_level,
            )
        except ValidationError as e:
            raise InvalidInputError(ERROR_INVALID_BOOKING_REQUEST, _details(e)) from e

    def book(
        self,
        request: Union[BookingRequest, Dict[str, Any]],
        created_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Shipment:
        """
        Quote and create a shipment.

        Args:
            request: Booking request or raw payload
            created_by: User id of the booking user
            now: Booking time (defaults to the service clock)

        Returns:
            The created shipment, status BOOKED

        Raises:
            InvalidInputError: If the booking is malformed
            NoRatesForLaneError: If the lane cannot be priced
            DuplicateReferenceError: If every reference attempt collided
        """
        if not isinstance(request, BookingRequest):
            try:
                request = BookingRequest.model_validate(request or {})
            except ValidationError as e:
                raise InvalidInputError(ERROR_INVALID_BOOKING_REQUEST, _details(e)) from e

        now = now or self.clock()
        quote = self.workflow.quote(self.build_quote_request(request), now=now)

        max_retries = self.settings.reference_max_retries
        for attempt in range(max_retries + 1):
            ref = self.reference_generator.next_ref(now)
            shipment = Shipment(
                ref=ref,
                status=ShipmentStatus.BOOKED,
                quote=quote,
                price=Price(currency=quote.currency, amount=quote.total),
                sender=request.sender,
                receiver=request.receiver,
                contents=request.contents,
                service_level=quote.service_level,
                created_at=now,
                created_by=created_by,
            )
            try:
                created = self.store.create(shipment)
            except DuplicateReferenceError:
                if attempt >= max_retries:
                    raise
                logger.warning(f"Reference {ref} already taken, retrying ({attempt + 1}/{max_retries})")
                continue

            logger.info(f"Booked {created.ref}: {quote.total:.2f} {quote.currency} ({quote.service_level.value})")
            return created
