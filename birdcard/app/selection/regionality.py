"""Advisory check of whether an already-chosen bird is also local to an observer.

Nothing here feeds back into selection.  The result only changes how the
content is framed ("spotted near you" versus "something interesting").
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..errors import ObservationSourceError
from ..models import Item, Location

logger = logging.getLogger(__name__)


class ObservationSource(Protocol):
    """Observational-data collaborator."""

    async def occurrences_near(
        self, item: Item, location: Location, radius_km: int, window_days: int
    ) -> int:
        """Count recent observations of *item* near *location*."""
        ...


class RegionalityChecker:
    """Stateless wrapper around an :class:`ObservationSource`."""

    def __init__(
        self,
        source: ObservationSource,
        radius_km: int = 160,
        window_days: int = 30,
    ) -> None:
        self._source = source
        self.radius_km = radius_km
        self.window_days = window_days

    async def check(
        self,
        item: Item,
        location: Location | None,
        radius_km: int | None = None,
        window_days: int | None = None,
    ) -> bool:
        """True if *item* was observed within *radius_km* of *location* lately.

        An unresolved observer is never regional.  Source failures are logged
        and reported as not regional.
        """
        if location is None:
            return False
        radius = radius_km if radius_km is not None else self.radius_km
        window = window_days if window_days is not None else self.window_days
        try:
            count = await self._source.occurrences_near(item, location, radius, window)
        except ObservationSourceError as exc:
            logger.warning(
                '[regionality] %s near %s unknown: %s', item.item_id, location.label, exc
            )
            return False
        logger.info(
            '[regionality] %s: %d observations within %dkm of %s in %dd',
            item.item_id,
            count,
            radius,
            location.label,
            window,
        )
        return count > 0


def message(item: Item, location: Location | None, is_regional: bool) -> str:
    """Framing sentence for the announcement; empty when the city is unknown."""
    if location is None or not location.city_name:
        return ''
    if is_regional:
        return (
            f'The {item.common_name} has been recently spotted near '
            f'{location.city_name}! Listen carefully - you might hear one nearby.'
        )
    return (
        f"While the {item.common_name} hasn't been spotted recently in "
        f"{location.city_name}, it's still a fascinating bird to learn about!"
    )
