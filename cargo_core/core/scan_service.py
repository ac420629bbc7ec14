"""Scan submission, administrative scan edits and scan history listing."""

import math
import threading
import weakref
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from cargo_core.config.logging_config import get_logger
from cargo_core.config.messages import ERROR_ADMIN_REQUIRED, ERROR_NOTE_TOO_LONG
from cargo_core.config.settings import Settings, get_settings
from cargo_core.core.lifecycle import apply_scan, normalize_scan_status, recompute_from_history
from cargo_core.core.repositories import ShipmentStore
from cargo_core.core.tracking import build_tracking_payload
from cargo_core.exceptions import (
    InvalidInputError,
    PermissionDeniedError,
    ScanNotFoundError,
    ShipmentNotFoundError,
)
from cargo_core.models.shipment import (
    Actor,
    ScanInput,
    ScanLocation,
    ScanPage,
    ScanSubmission,
    Shipment,
    ShipmentStatus,
    TrackingPayload,
)

logger = get_logger(__name__)

MAX_PAGE_LIMIT = 200
DEFAULT_PAGE_LIMIT = 50

StatusListener = Callable[[Shipment, ShipmentStatus, ShipmentStatus], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanService:
    """Caller-side policy around the lifecycle state machine.

    Loads the shipment, drops accidental double scans, serializes scans per
    shipment reference, persists with an optimistic version check and returns
    the tracking payload. Different shipments never share a lock.

    Status listeners are called after a persisted status change with
    ``(shipment, previous_status, new_status)``.
    """

    def __init__(
        self,
        store: ShipmentStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the service.

        Args:
            store: Shipment persistence
            settings: Settings instance (default: global settings)
            clock: Returns the server time for new scans (default: UTC now)
        """
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or _utcnow
        self._listeners: List[StatusListener] = []
        # entries vanish once no scan holds the lock for that ref
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ========== Helpers ==========

    def _lock_for(self, ref: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(ref)
            if lock is None:
                lock = threading.Lock()
                self._locks[ref] = lock
            return lock

    def is_admin(self, actor: Optional[Actor]) -> bool:
        if actor is None:
            return False
        admin_roles = {role.strip().lower() for role in self.settings.admin_roles}
        return actor.normalized_role in admin_roles

    def _require_admin(self, actor: Optional[Actor]) -> None:
        if not self.is_admin(actor):
            raise PermissionDeniedError(ERROR_ADMIN_REQUIRED)

    def _check_note(self, note: Optional[str]) -> None:
        max_length = self.settings.scan_note_max_length
        if note is not None and len(note) > max_length:
            message = ERROR_NOTE_TOO_LONG.format(max_length=max_length)
            raise InvalidInputError(message, [{"field": "note", "message": message}])

    def _is_duplicate(
        self,
        shipment: Shipment,
        status: ShipmentStatus,
        actor: Optional[Actor],
        now: datetime
    ) -> bool:
        last = shipment.latest_scan()
        if last is None:
            return False
        last_role = last.actor.normalized_role if last.actor else ""
        role = actor.normalized_role if actor else ""
        elapsed = (now - last.created_at).total_seconds()
        return (
            last.status == status
            and last_role == role
            and elapsed < self.settings.idempotency_window_seconds
        )

    def _notify(self, shipment: Shipment, previous: ShipmentStatus) -> None:
        if shipment.status == previous:
            return
        for listener in list(self._listeners):
            try:
                listener(shipment, previous, shipment.status)
            except Exception:
                # the change is already persisted; a failing listener must not undo it
                logger.exception(f"Status listener failed for {shipment.ref}")

    def _get_shipment(self, ref: str) -> Shipment:
        shipment = self.store.get(ref)
        if shipment is None:
            raise ShipmentNotFoundError(ref)
        return shipment

    # ========== Public API ==========

    def add_status_listener(self, listener: StatusListener) -> None:
        """Register a callable notified after every persisted status change."""
        self._listeners.append(listener)

    def get_tracking(self, ref: str) -> TrackingPayload:
        """Tracking payload for a shipment reference."""
        return build_tracking_payload(self._get_shipment(ref.strip().upper()))

    def submit_scan(
        self,
        submission: Union[ScanSubmission, Dict[str, Any]],
        actor: Optional[Actor] = None
    ) -> TrackingPayload:
        """
        Apply a scan to a shipment.

        A scan with the same status and actor role as the most recent scan,
        within the idempotency window, is dropped and the unchanged tracking
        payload is returned. Admin actors may override the transition rules.

        Args:
            submission: Scan submission model or raw payload
            actor: Authenticated actor submitting the scan

        Returns:
            Tracking payload after the scan

        Raises:
            InvalidInputError: If the payload is malformed or the status unsupported
            MissingStatusError: If no status is given
            ShipmentNotFoundError: If the reference is unknown
            InvalidTransitionError: If the transition is not allowed
            StaleScanTimestampError: If the clock did not advance past the last scan
            ConcurrentUpdateError: If the shipment changed while the scan was applied
        """
        if not isinstance(submission, ScanSubmission):
            try:
                submission = ScanSubmission.model_validate(submission or {})
            except ValidationError as e:
                details = [
                    {"field": ".".join(str(p) for p in item["loc"]), "message": item["msg"]}
                    for item in e.errors()
                ]
                raise InvalidInputError("Invalid scan submission", details) from e

        status = normalize_scan_status(submission.status)
        self._check_note(submission.note)
        location = submission.location or ScanLocation(city=self.settings.default_scan_location)

        ref = submission.ref
        with self._lock_for(ref):
            shipment = self._get_shipment(ref)
            now = self.clock()

            if self._is_duplicate(shipment, status, actor, now):
                logger.info(f"Dropped duplicate {status.value} scan for {ref}")
                return build_tracking_payload(shipment)

            scan_input = ScanInput(
                status=status,
                location=location,
                note=submission.note,
                actor=actor,
                photo_ref=submission.photo_ref,
            )
            previous = shipment.status
            updated = apply_scan(shipment, scan_input, admin_override=self.is_admin(actor), now=now)
            saved = self.store.save(updated, expected_version=shipment.version)

        logger.info(f"Scan applied to {ref}: {previous.value} -> {saved.status.value}")
        self._notify(saved, previous)
        return build_tracking_payload(saved)

    def edit_scan(
        self,
        scan_id: str,
        actor: Optional[Actor],
        note: Optional[str] = None,
        location: Optional[Union[ScanLocation, Dict[str, Any], str]] = None,
        status: Optional[Union[ShipmentStatus, str]] = None
    ) -> TrackingPayload:
        """
        Edit a scan in place and recompute the shipment (admin only).

        Fields left as None are unchanged. The transition rules are not applied.

        Raises:
            PermissionDeniedError: If the actor is not an admin
            ScanNotFoundError: If no shipment owns the scan
        """
        self._require_admin(actor)
        self._check_note(note)

        updates: Dict[str, Any] = {}
        if note is not None:
            updates["note"] = note
        if location is not None:
            if isinstance(location, str):
                location = ScanLocation(city=location)
            elif isinstance(location, dict):
                location = ScanLocation.model_validate(location)
            updates["location"] = location
        if status is not None:
            updates["status"] = normalize_scan_status(status)

        return self._rewrite_history(
            scan_id,
            lambda scans: [s.model_copy(update=updates) if s.id == scan_id else s for s in scans],
        )

    def remove_scan(self, scan_id: str, actor: Optional[Actor]) -> TrackingPayload:
        """
        Remove a scan and recompute the shipment (admin only).

        Raises:
            PermissionDeniedError: If the actor is not an admin
            ScanNotFoundError: If no shipment owns the scan
        """
        self._require_admin(actor)
        return self._rewrite_history(
            scan_id,
            lambda scans: [s for s in scans if s.id != scan_id],
        )

    def _rewrite_history(self, scan_id: str, rewrite: Callable[[list], list]) -> TrackingPayload:
        scan_id = str(scan_id or "").strip()
        owner = self.store.find_by_scan_id(scan_id) if scan_id else None
        if owner is None:
            raise ScanNotFoundError(scan_id)

        with self._lock_for(owner.ref):
            shipment = self._get_shipment(owner.ref)
            if shipment.find_scan(scan_id) is None:
                raise ScanNotFoundError(scan_id)

            previous = shipment.status
            edited = shipment.model_copy(update={"scans": rewrite(list(shipment.scans))})
            updated = recompute_from_history(edited)
            saved = self.store.save(updated, expected_version=shipment.version)

        logger.info(f"Scan history of {saved.ref} edited ({scan_id}); status {previous.value} -> {saved.status.value}")
        self._notify(saved, previous)
        return build_tracking_payload(saved)

    def list_scans(
        self,
        ref: str,
        order: str = "asc",
        page: Any = 1,
        limit: Any = DEFAULT_PAGE_LIMIT
    ) -> ScanPage:
        """
        Paginated scan history of a shipment.

        Args:
            ref: Shipment reference (case-insensitive)
            order: "asc" or "desc" by scan time; anything else means "asc"
            page: 1-based page number, values below 1 become 1
            limit: Page size, clamped to 1..200 (default 50)

        Returns:
            ScanPage

        Raises:
            ShipmentNotFoundError: If the reference is unknown
        """
        ref = str(ref or "").strip().upper()
        order = "desc" if str(order or "").strip().lower() == "desc" else "asc"
        page = max(_to_int(page, 1), 1)
        limit = min(max(_to_int(limit, DEFAULT_PAGE_LIMIT), 1), MAX_PAGE_LIMIT)

        shipment = self._get_shipment(ref)
        scans = shipment.sorted_scans(descending=order == "desc")
        total = len(scans)
        start = (page - 1) * limit

        return ScanPage(
            ref=shipment.ref,
            status=shipment.status,
            last_scan_at=shipment.last_scan_at,
            data=scans[start:start + limit],
            page=page,
            total_pages=math.ceil(total / limit) if total else 0,
            total=total,
            order=order,
            limit=limit,
        )


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
