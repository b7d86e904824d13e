"""Offline timezone-polygon lookup, the primary coordinate-to-zone source."""

from __future__ import annotations

import functools
import logging

import timezonefinder

logger = logging.getLogger(__name__)


@functools.cache
def _finder() -> timezonefinder.TimezoneFinder:
    return timezonefinder.TimezoneFinder()


def timezone_at(latitude: float, longitude: float) -> str | None:
    """IANA zone whose polygon contains the point, or None if there is none."""
    try:
        return _finder().timezone_at(lng=longitude, lat=latitude)
    except ValueError as exc:
        logger.warning('[timezone] Polygon lookup failed for %s, %s: %s', latitude, longitude, exc)
        return None
