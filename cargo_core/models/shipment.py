"""Shipment lifecycle models: statuses, scan events, shipments and tracking payloads."""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cargo_core.models.quote_models import Address, Quote
from cargo_core.models.schema import ServiceLevel


class ShipmentStatus(str, Enum):
    """All statuses a shipment can be in.

    The first six are ordered milestones. EXCEPTION can be entered from any
    non-delivered state. CANCELED is a legacy state that scans never reach.
    """
    BOOKED = "BOOKED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    AT_HUB = "AT_HUB"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"
    CANCELED = "CANCELED"


class ScanLocation(BaseModel):
    """Where a scan happened."""
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("city", "country", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return None
        return str(value).strip()


class Actor(BaseModel):
    """Who submitted a scan, as supplied by the authentication layer.

    Attributes:
        user_id: Internal user identifier (never exposed publicly)
        role: Role name such as "driver", "staff" or "admin"
    """
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    role: Optional[str] = None

    @property
    def normalized_role(self) -> str:
        return (self.role or "").strip().lower()


class ScanEvent(BaseModel):
    """A scan appended to a shipment's history.

    Immutable once created; administrative edits replace the event with an
    edited copy that keeps its ``id`` and ``created_at``.

    Attributes:
        id: Local identifier used for administrative edit/removal
        status: Status the shipment moved to with this scan
        created_at: Server-assigned timestamp
        location: Optional scan location
        note: Optional free text (at most 500 characters)
        actor: Optional actor (user id + role)
        photo_ref: Optional reference to a proof photo
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    status: ShipmentStatus
    created_at: datetime
    location: Optional[ScanLocation] = None
    note: Optional[str] = Field(None, max_length=500)
    actor: Optional[Actor] = None
    photo_ref: Optional[str] = None


class ScanSubmission(BaseModel):
    """Inbound scan request for one shipment.

    ``status`` accepts canonical statuses and legacy scan types; it is
    normalized by ``cargo_core.core.lifecycle.normalize_scan_status``.
    The actor is not part of the payload: the caller passes it separately.
    """
    ref: str = Field(min_length=1, description="Shipment reference")
    status: Optional[str] = Field(None, description="Target status or legacy scan type")
    location: Optional[ScanLocation] = None
    note: Optional[str] = Field(None, max_length=500)
    photo_ref: Optional[str] = None

    @field_validator("ref")
    @classmethod
    def _normalize_ref(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("ref is required")
        return value

    @field_validator("location", mode="before")
    @classmethod
    def _location_from_text(cls, value):
        # free-text locations are read as a city
        if isinstance(value, str):
            return {"city": value}
        return value

    @field_validator("note", mode="before")
    @classmethod
    def _strip_note(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class ScanInput(BaseModel):
    """Normalized scan handed to the state machine."""
    model_config = ConfigDict(frozen=True)

    status: Optional[ShipmentStatus] = None
    location: Optional[ScanLocation] = None
    note: Optional[str] = Field(None, max_length=500)
    actor: Optional[Actor] = None
    photo_ref: Optional[str] = None


class Price(BaseModel):
    """Amount the customer pays for a shipment."""
    model_config = ConfigDict(frozen=True)

    currency: str
    amount: float


class Party(BaseModel):
    """Sender or receiver of a shipment."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Address


class ContentItem(BaseModel):
    """One line of shipment contents."""
    model_config = ConfigDict(frozen=True)

    description: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    weight_kg: Optional[float] = Field(None, ge=0, description="Weight per piece")
    length_cm: Optional[float] = Field(None, ge=0)
    width_cm: Optional[float] = Field(None, ge=0)
    height_cm: Optional[float] = Field(None, ge=0)
    value_currency: Optional[str] = None
    value_amount: Optional[float] = None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.length_cm and self.width_cm and self.height_cm)


class BookingRequest(BaseModel):
    """Inbound shipment booking."""
    sender: Party
    receiver: Party
    contents: List[ContentItem] = Field(min_length=1)
    service_level: Optional[ServiceLevel] = None
    pickup_date: Optional[datetime] = None
    pickup_notes: Optional[str] = None


class Shipment(BaseModel):
    """Core lifecycle entity.

    Mutated only by appending scans or by administrative edits of the scan
    history followed by recomputation of the derived fields
    (``status``, ``last_scan_at``, ``delivered_at``).

    Attributes:
        ref: Unique, immutable reference code (e.g. "SHP-20251001-0007")
        status: Current status
        scans: Owned scan history, in append order
        last_scan_at: Timestamp of the latest scan
        delivered_at: Timestamp of the first DELIVERED scan, None until delivered
        quote: Quote frozen at booking time
        price: Amount to pay (quote total)
        sender: Sender party
        receiver: Receiver party
        contents: Content items
        service_level: Booked service level
        created_at: Booking time
        created_by: User id of the booking user
        version: Optimistic concurrency counter, bumped on every save
    """
    ref: str
    status: ShipmentStatus = ShipmentStatus.BOOKED
    scans: List[ScanEvent] = Field(default_factory=list)
    last_scan_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    quote: Optional[Quote] = None
    price: Optional[Price] = None
    sender: Optional[Party] = None
    receiver: Optional[Party] = None
    contents: List[ContentItem] = Field(default_factory=list)
    service_level: ServiceLevel = ServiceLevel.STANDARD
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    version: int = 0

    def find_scan(self, scan_id: str) -> Optional[ScanEvent]:
        for scan in self.scans:
            if scan.id == scan_id:
                return scan
        return None

    def latest_scan(self) -> Optional[ScanEvent]:
        """Most recent scan by timestamp (ties resolved by append order)."""
        if not self.scans:
            return None
        return max(enumerate(self.scans), key=lambda pair: (pair[1].created_at, pair[0]))[1]

    def sorted_scans(self, descending: bool = False) -> List[ScanEvent]:
        return sorted(self.scans, key=lambda s: s.created_at, reverse=descending)


# ========== Tracking payload ==========

class LocationSummary(BaseModel):
    city: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class ItemsSummary(BaseModel):
    item_count: int
    total_qty: int
    total_weight_kg: float


class Progress(BaseModel):
    current_index: int
    milestones: List[ShipmentStatus]


class PublicActor(BaseModel):
    role: Optional[str] = None


class TimelineEntry(BaseModel):
    id: str
    status: ShipmentStatus
    created_at: datetime
    location: Optional[ScanLocation] = None
    note: str = ""
    actor: Optional[PublicActor] = None
    photo_ref: Optional[str] = None


class TrackingPayload(BaseModel):
    """Public tracking response. Actors appear only as roles."""
    ref: str
    status: ShipmentStatus
    origin: LocationSummary
    destination: LocationSummary
    service_level: ServiceLevel
    items_summary: ItemsSummary
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    progress: Progress
    timeline: List[TimelineEntry]


class ScanPage(BaseModel):
    """One page of a shipment's scan history."""
    ref: str
    status: ShipmentStatus
    last_scan_at: Optional[datetime] = None
    data: List[ScanEvent]
    page: int
    total_pages: int
    total: int
    order: Literal["asc", "desc"]
    limit: int
