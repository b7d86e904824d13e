"""Local calendar day of an observer.

A day boundary is local to the observer, not to the server: two observers in
different timezones can see different day keys at the same instant.
"""

from __future__ import annotations

import datetime
import logging
import zoneinfo
from collections.abc import Callable

import pydantic

from ..models import Clock, Location, LocationSource, utc_now
from . import timezones

logger = logging.getLogger(__name__)

TimezoneLookup = Callable[[float, float], str | None]

UTC_ZONE = 'UTC'


class DayKey(pydantic.BaseModel):
    """``YYYY-MM-DD`` in the observer's zone plus how it was derived."""

    model_config = pydantic.ConfigDict(frozen=True)

    value: str
    timezone: str
    # Computed for an unresolved observer; ineligible for per-location buckets.
    is_global: bool = False

    def __str__(self) -> str:
        return self.value

    @property
    def date(self) -> datetime.date:
        """The day key as a date."""
        return datetime.date.fromisoformat(self.value)


def anchor_index(day: datetime.date | str, anchor_count: int) -> int:
    """Deterministic anchor for a day: ``(year*365 + dayOfYear) mod anchorCount``."""
    if isinstance(day, str):
        day = datetime.date.fromisoformat(day)
    if anchor_count <= 0:
        raise ValueError('anchor_count must be positive')
    return (day.year * 365 + day.timetuple().tm_yday) % anchor_count


def _load_zone(name: str | None) -> zoneinfo.ZoneInfo | None:
    if not name:
        return None
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning('[timezone] Unknown zone %r, trying next strategy', name)
        return None


class DayKeyCalculator:
    """Maps a location to its local ``YYYY-MM-DD`` day key.

    Zone lookup order: the zone a device registry reported, the injected
    primary lookup (an offline polygon dataset when available), the built-in
    coordinate table, then UTC.
    """

    def __init__(
        self,
        primary_lookup: TimezoneLookup | None = None,
        fallback_lookup: TimezoneLookup = timezones.timezone_for_coordinates,
        clock: Clock = utc_now,
    ) -> None:
        self._primary_lookup = primary_lookup
        self._fallback_lookup = fallback_lookup
        self._clock = clock

    def timezone_for(self, location: Location) -> zoneinfo.ZoneInfo:
        """Return the zone used for *location*, falling back to UTC."""
        candidates: list[Callable[[], str | None]] = [lambda: location.timezone]
        if self._primary_lookup is not None:
            primary = self._primary_lookup
            candidates.append(lambda: primary(location.latitude, location.longitude))
        candidates.append(
            lambda: self._fallback_lookup(location.latitude, location.longitude)
        )
        for candidate in candidates:
            zone = _load_zone(candidate())
            if zone is not None:
                return zone
        logger.info(
            '[timezone] No zone for %.4f, %.4f; using UTC',
            location.latitude,
            location.longitude,
        )
        return zoneinfo.ZoneInfo(UTC_ZONE)

    def compute(
        self, location: Location | None, now: datetime.datetime | None = None
    ) -> DayKey:
        """Return the day key at *location* for *now* (default: the clock).

        Unresolved observers (and anchor locations) get a UTC day key tagged
        global.
        """
        now = now or self._clock()
        if location is None or location.source == LocationSource.GLOBAL_FALLBACK:
            utc_day = now.astimezone(datetime.UTC).date()
            return DayKey(value=utc_day.isoformat(), timezone=UTC_ZONE, is_global=True)
        zone = self.timezone_for(location)
        local_day = now.astimezone(zone).date()
        return DayKey(value=local_day.isoformat(), timezone=zone.key)
