"""eBird API client.

Serves two roles: the external selection source (which bird is being seen
near a location) and the observational-data source used for regionality
checks.
"""

from __future__ import annotations

import logging
import random

import httpx
from geopy import distance  # pyright: ignore[reportMissingTypeStubs]

from ..errors import ExternalSelectionUnavailable, ObservationSourceError
from ..models import Item, Location
from ..selection import anchors

logger = logging.getLogger(__name__)

# (radius_km, days_back) tried in order until a search returns observations.
SEARCH_CASCADE: list[tuple[int, int]] = [(50, 30), (100, 30), (150, 60)]


class EBirdClient:
    """Thin async wrapper around the eBird v2 API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        base_url: str = 'https://api.ebird.org/v2',
        rng: random.Random | None = None,
    ) -> None:
        self._http = http
        self._api_key = api_key
        self._base_url = base_url.rstrip('/')
        self._rng = rng or random.Random()
        self._species_codes: dict[str, str] = {}

    def _headers(self) -> dict[str, str]:
        return {'X-eBirdApiToken': self._api_key}

    async def _get_json(self, path: str, params: dict[str, str]) -> list[dict[str, object]]:
        response = await self._http.get(
            f'{self._base_url}{path}', params=params, headers=self._headers()
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f'unexpected eBird payload for {path}')
        return data

    async def recent_observations(
        self, latitude: float, longitude: float, radius_km: int, days: int
    ) -> list[dict[str, object]]:
        """Return recent observations of any species around a point."""
        return await self._get_json(
            '/data/obs/geo/recent',
            {
                'lat': f'{latitude:.4f}',
                'lng': f'{longitude:.4f}',
                'dist': str(radius_km),
                'back': str(days),
                'maxResults': '100',
            },
        )

    # ------------------------------------------------------------------
    # Selection source
    # ------------------------------------------------------------------

    async def select_for_location(self, location: Location) -> Item | None:
        """Pick a bird recently observed near *location*.

        Returns None when every search succeeded but found nothing.

        Raises:
            ExternalSelectionUnavailable: every search failed outright.
        """
        failures = 0
        observations: list[dict[str, object]] = []
        for radius_km, days in SEARCH_CASCADE:
            try:
                observations = await self.recent_observations(
                    location.latitude, location.longitude, radius_km, days
                )
            except (httpx.HTTPError, ValueError) as exc:
                failures += 1
                logger.warning(
                    '[ebird] %dkm/%dd search near %s failed: %s',
                    radius_km,
                    days,
                    location.label,
                    exc,
                )
                continue
            if observations:
                logger.info(
                    '[ebird] %d observations within %dkm/%dd of %s',
                    len(observations),
                    radius_km,
                    days,
                    location.label,
                )
                break

        if failures == len(SEARCH_CASCADE):
            raise ExternalSelectionUnavailable(f'eBird unavailable near {location.label}')

        species: dict[str, Item] = {}
        for obs in observations:
            code = obs.get('speciesCode')
            name = obs.get('comName')
            if not isinstance(code, str) or not isinstance(name, str) or code in species:
                continue
            sci_name = obs.get('sciName')
            species[code] = Item.from_name(
                name,
                scientific_name=sci_name if isinstance(sci_name, str) else None,
                species_code=code,
            )
        if not species:
            logger.info('[ebird] No species found near %s', location.label)
            return None

        candidates = sorted(species.values(), key=lambda item: item.item_id)
        choice = self._rng.choice(candidates)
        logger.info(
            '[ebird] Picked %s from %d species near %s',
            choice.common_name,
            len(candidates),
            location.label,
        )
        return choice

    async def select_from_anchor(self, index: int) -> Item:
        """Pick a bird for anchor *index*; falls back to the worldwide list."""
        anchor = anchors.anchor_location(index)
        try:
            item = await self.select_for_location(anchor)
        except ExternalSelectionUnavailable as exc:
            logger.warning('[ebird] Anchor %s unavailable: %s', anchor.label, exc)
            item = None
        if item is None:
            item = anchors.worldwide_bird(index)
            logger.info('[ebird] Using worldwide bird %s for anchor %d', item.common_name, index)
        return item

    # ------------------------------------------------------------------
    # Observation source
    # ------------------------------------------------------------------

    async def species_code(self, item: Item) -> str:
        """Return the eBird species code for *item*, looking it up by name if needed."""
        if item.species_code:
            return item.species_code
        cached = self._species_codes.get(item.common_name)
        if cached is not None:
            return cached
        try:
            results = await self._get_json(
                '/ref/taxonomy/ebird',
                {'fmt': 'json', 'locale': 'en', 'q': item.common_name},
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise ObservationSourceError(
                f'taxonomy lookup for {item.common_name} failed: {exc}'
            ) from exc
        code = results[0].get('speciesCode') if results else None
        if not isinstance(code, str):
            raise ObservationSourceError(f'no species code for {item.common_name}')
        self._species_codes[item.common_name] = code
        return code

    async def occurrences_near(
        self, item: Item, location: Location, radius_km: int, window_days: int
    ) -> int:
        """Count recent observations of *item* within *radius_km* of *location*."""
        code = await self.species_code(item)
        try:
            observations = await self._get_json(
                f'/data/obs/geo/recent/{code}',
                {
                    'lat': f'{location.latitude:.4f}',
                    'lng': f'{location.longitude:.4f}',
                    'dist': str(radius_km),
                    'back': str(window_days),
                },
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise ObservationSourceError(f'observations for {code} failed: {exc}') from exc

        origin = (location.latitude, location.longitude)
        count = 0
        for obs in observations:
            lat, lng = obs.get('lat'), obs.get('lng')
            if isinstance(lat, (int, float)) and isinstance(lng, (int, float)):
                if distance.geodesic(origin, (lat, lng)).km > radius_km:
                    continue
            count += 1
        return count
