"""Collaborator interfaces for rate cards and shipments, with in-memory implementations."""

import copy
import threading
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from cargo_core.config.logging_config import get_logger
from cargo_core.exceptions import (
    ConcurrentUpdateError,
    DuplicateReferenceError,
    NoMatchingServiceLevelError,
    ShipmentNotFoundError,
)
from cargo_core.models.schema import RateCardDatabase, ServiceLevel, Tariff
from cargo_core.models.shipment import Shipment

logger = get_logger(__name__)


class RateRepository(Protocol):
    """Supplies candidate rate cards for a lane."""

    def find_active(
        self,
        origin_zone: str,
        destination_zone: str,
        service_level: Optional[Union[ServiceLevel, str]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[Tariff]:
        ...


class ShipmentStore(Protocol):
    """Persists shipments. Storage errors propagate to the caller unchanged."""

    def create(self, shipment: Shipment) -> Shipment:
        ...

    def get(self, ref: str) -> Optional[Shipment]:
        ...

    def find_by_scan_id(self, scan_id: str) -> Optional[Shipment]:
        ...

    def save(self, shipment: Shipment, expected_version: int) -> Shipment:
        ...

    def next_sequence(self, key: str, day: str) -> int:
        ...


class InMemoryRateRepository:
    """Rate repository backed by a loaded ``RateCardDatabase``."""

    def __init__(self, database: Optional[RateCardDatabase] = None):
        self.database = database or RateCardDatabase()

    @classmethod
    def from_cards(cls, cards: Sequence[Tariff]) -> "InMemoryRateRepository":
        return cls(RateCardDatabase(rate_cards=list(cards)))

    def find_active(
        self,
        origin_zone: str,
        destination_zone: str,
        service_level: Optional[Union[ServiceLevel, str]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[Tariff]:
        """Active cards for a lane that are valid at ``as_of``, newest first.

        Args:
            origin_zone: Origin zone code
            destination_zone: Destination zone code
            service_level: Optional service level filter
            as_of: Validity instant (defaults to now, UTC)

        Returns:
            Matching cards sorted by effective_from descending

        Raises:
            NoMatchingServiceLevelError: If the service level is not a known level
        """
        as_of = as_of or datetime.now(timezone.utc)
        level = None
        if service_level:
            level_text = str(getattr(service_level, "value", service_level)).strip().lower()
            try:
                level = ServiceLevel(level_text)
            except ValueError as e:
                raise NoMatchingServiceLevelError(level_text) from e
        cards = self.database.get_rate_cards(origin_zone, destination_zone, level)
        active = [card for card in cards if card.is_valid_on(as_of)]
        active.sort(key=lambda card: card.effective_from, reverse=True)
        logger.debug(f"Found {len(active)} active rate card(s) for {origin_zone}->{destination_zone}")
        return active


class InMemoryShipmentStore:
    """Thread-safe in-memory shipment store.

    Shipments are deep-copied on the way in and out, so callers never share
    state with the store. ``save`` bumps the version and fails with
    ``ConcurrentUpdateError`` when the stored version differs from the expected one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._shipments: Dict[str, Shipment] = {}
        self._sequences: Dict[Tuple[str, str], int] = defaultdict(int)

    def create(self, shipment: Shipment) -> Shipment:
        with self._lock:
            if shipment.ref in self._shipments:
                raise DuplicateReferenceError(shipment.ref)
            self._shipments[shipment.ref] = copy.deepcopy(shipment)
            return copy.deepcopy(shipment)

    def get(self, ref: str) -> Optional[Shipment]:
        with self._lock:
            shipment = self._shipments.get(ref)
            return copy.deepcopy(shipment) if shipment is not None else None

    def find_by_scan_id(self, scan_id: str) -> Optional[Shipment]:
        with self._lock:
            for shipment in self._shipments.values():
                if shipment.find_scan(scan_id) is not None:
                    return copy.deepcopy(shipment)
            return None

    def save(self, shipment: Shipment, expected_version: int) -> Shipment:
        with self._lock:
            stored = self._shipments.get(shipment.ref)
            if stored is None:
                raise ShipmentNotFoundError(shipment.ref)
            if stored.version != expected_version:
                raise ConcurrentUpdateError(shipment.ref, expected_version, stored.version)
            saved = shipment.model_copy(deep=True, update={"version": expected_version + 1})
            self._shipments[shipment.ref] = saved
            return copy.deepcopy(saved)

    def next_sequence(self, key: str, day: Union[str, date]) -> int:
        """Atomically increment and return the counter for ``(key, day)``."""
        day_key = day.strftime("%Y%m%d") if isinstance(day, date) else str(day)
        with self._lock:
            self._sequences[(key, day_key)] += 1
            return self._sequences[(key, day_key)]

    def all(self) -> List[Shipment]:
        with self._lock:
            return [copy.deepcopy(s) for s in self._shipments.values()]
