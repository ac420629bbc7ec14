"""Delivery date estimation under business-day and cutoff-hour rules."""

import math
from datetime import date, datetime, timedelta, timezone
from numbers import Real
from typing import Dict, Iterable, Optional, Set, Union
from zoneinfo import ZoneInfo

from cargo_core.config.logging_config import get_logger
from cargo_core.exceptions import InvalidTransitDaysError
from cargo_core.models.schema import ServiceLevel

logger = get_logger(__name__)


# Monday=0 ... Sunday=6
DEFAULT_WEEKEND_DAYS = frozenset({5, 6})

# Lane transit days, used when a rate card carries none
DEFAULT_TRANSIT_MAP: Dict[str, Dict[str, int]] = {
    "EU1->EU1": {"economy": 2, "standard": 1, "express": 1},
    "EU1->EU2": {"standard": 2, "express": 1},
    "EU2->EU1": {"standard": 2, "express": 1},
    "EU1->AFR1": {"standard": 5, "express": 3},
    "EU2->AFR1": {"standard": 6, "express": 4},
    "EU1->INT": {"standard": 4, "express": 2},
}


def _to_date_set(holidays: Optional[Iterable[Union[date, str]]]) -> Set[date]:
    result = set()
    for item in holidays or []:
        if isinstance(item, datetime):
            result.add(item.date())
        elif isinstance(item, date):
            result.add(item)
        else:
            result.add(date.fromisoformat(str(item).strip()))
    return result


def _whole_days(transit_days) -> int:
    if isinstance(transit_days, bool) or not isinstance(transit_days, Real):
        raise InvalidTransitDaysError(transit_days)
    if not math.isfinite(transit_days) or transit_days < 0:
        raise InvalidTransitDaysError(transit_days)
    return math.ceil(transit_days)


def calculate_eta(
    start_time: datetime,
    transit_days: float,
    business_days_only: bool = True,
    holidays: Optional[Iterable[Union[date, str]]] = None,
    ship_cutoff_hour_local: Optional[int] = 16,
    weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS,
    tz: Optional[Union[str, ZoneInfo]] = None,
) -> datetime:
    """Estimate the delivery instant for a shipment.

    When the local hour of ``start_time`` is at or after the cutoff hour, counting
    starts from the next calendar day. In business-day mode the calendar is
    stepped one day at a time and only days that are neither weekend days nor
    holidays are counted; in calendar mode the days are added directly.

    Args:
        start_time: Booking or quote time (naive values are read as UTC)
        transit_days: Non-negative number of days; fractions are rounded up
        business_days_only: Skip weekends and holidays when counting
        holidays: Local calendar dates (date objects or ISO strings)
        ship_cutoff_hour_local: Local cutoff hour 0-23, None disables the cutoff
        weekend_days: Weekdays treated as weekend (Monday=0 ... Sunday=6)
        tz: IANA timezone name or ZoneInfo for local calendar rules (default UTC)

    Returns:
        Timezone-aware estimated delivery datetime in the local timezone

    Raises:
        InvalidTransitDaysError: If transit_days is negative, not finite or not a number
    """
    days = _whole_days(transit_days)

    zone = ZoneInfo(tz) if isinstance(tz, str) else (tz or timezone.utc)
    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=timezone.utc)
    current = start_time.astimezone(zone)

    if ship_cutoff_hour_local is not None and current.hour >= ship_cutoff_hour_local:
        current = current + timedelta(days=1)

    if not business_days_only:
        return current + timedelta(days=days)

    holiday_dates = _to_date_set(holidays)
    weekend = set(weekend_days)
    counted = 0
    while counted < days:
        current = current + timedelta(days=1)
        if current.weekday() in weekend or current.date() in holiday_dates:
            continue
        counted += 1
    return current


class TransitTable:
    """Lane transit days keyed origin zone -> destination zone -> service level.

    A lane without the requested service level falls back to its ``standard``
    entry.
    """

    def __init__(self, transit_map: Optional[Dict[str, Dict[str, int]]] = None):
        self.transit_map = dict(DEFAULT_TRANSIT_MAP if transit_map is None else transit_map)

    def lookup(
        self,
        origin_zone: str,
        destination_zone: str,
        service_level: Union[ServiceLevel, str] = ServiceLevel.STANDARD
    ) -> Optional[int]:
        """Transit days for a lane, or None if the lane or level is unknown."""
        lane = self.transit_map.get(f"{origin_zone}->{destination_zone}")
        if not lane:
            return None
        level = str(getattr(service_level, "value", service_level) or "standard").lower()
        if level in lane:
            return lane[level]
        return lane.get("standard")
