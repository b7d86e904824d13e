"""Coarse geographic buckets shared by nearby observers."""

from __future__ import annotations

from ..models import Location, LocationSource

# Reserved bucket for unresolved observers and the day's global item.
GLOBAL_BUCKET = 'global'


class LocationBucketer:
    """Rounds coordinates so observers within roughly city distance collide.

    One decimal place is about 11 km of latitude.
    """

    def __init__(self, precision: int = 1) -> None:
        if precision < 0:
            raise ValueError('precision must be non-negative')
        self.precision = precision

    def _fmt(self, value: float) -> str:
        # Adding 0.0 turns -0.0 into 0.0 so '-0.0' never appears in a key.
        return f'{round(value, self.precision) + 0.0:.{self.precision}f}'

    def bucket(self, location: Location | None) -> str:
        """Return the bucket key for *location*."""
        if location is None or location.source == LocationSource.GLOBAL_FALLBACK:
            return GLOBAL_BUCKET
        return f'{self._fmt(location.latitude)},{self._fmt(location.longitude)}'
