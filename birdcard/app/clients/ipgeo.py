"""IP geolocation via ip-api.com."""

from __future__ import annotations

import logging

import httpx

from ..errors import LocationLookupError
from ..models import Location, LocationSource

logger = logging.getLogger(__name__)


class IpApiClient:
    """Resolves public IP addresses to city-level locations."""

    def __init__(self, http: httpx.AsyncClient, base_url: str = 'http://ip-api.com/json') -> None:
        self._http = http
        self._base_url = base_url.rstrip('/')

    async def resolve(self, ip_address: str) -> Location:
        """Return the location of *ip_address*.

        Raises:
            LocationLookupError: on transport errors, bad responses, or a
                ``status`` other than ``success``.
        """
        try:
            response = await self._http.get(
                f'{self._base_url}/{ip_address}',
                params={'fields': 'status,message,city,regionName,country,lat,lon'},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LocationLookupError(f'IP lookup for {ip_address} failed: {exc}') from exc

        if data.get('status') != 'success':
            raise LocationLookupError(
                f'IP lookup for {ip_address} failed: {data.get("message", "unknown error")}'
            )
        try:
            location = Location(
                latitude=float(data['lat']),
                longitude=float(data['lon']),
                city_name=data.get('city') or None,
                region_name=data.get('regionName') or None,
                country_name=data.get('country') or None,
                source=LocationSource.IP,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise LocationLookupError(f'IP lookup for {ip_address} returned no coordinates') from exc
        logger.info('[ipgeo] %s -> %s, %s', ip_address, location.city_name, location.country_name)
        return location
