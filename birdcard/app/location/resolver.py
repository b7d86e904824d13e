"""Observer location cascade.

Strategies, in priority order:

1. IP geolocation of the request's network address.
2. The device's configured timezone (from the device registry), mapped to a
   representative city.
3. An explicit *unresolved* result.

There is no fixed default place: unknown observers never land in the
per-location cache of a real city.
"""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Sequence
from typing import Protocol

from geopy import distance  # pyright: ignore[reportMissingTypeStubs]

from ..errors import LocationLookupError
from ..models import UNRESOLVED, Location, Resolution
from . import timezones

logger = logging.getLogger(__name__)

IP_CONFIDENCE = 0.8
TIMEZONE_CONFIDENCE = 0.4

# Answers this close to a sentinel are a provider's "don't know" default.
SENTINEL_TOLERANCE_KM = 1.0


class IpLocator(Protocol):
    """IP geolocation collaborator."""

    async def resolve(self, ip_address: str) -> Location:
        """Return the location of *ip_address* or raise LocationLookupError."""
        ...


class DeviceRegistry(Protocol):
    """Device registry collaborator."""

    async def get_timezone(self, device_id: str) -> str:
        """Return the device's timezone name or raise LocationLookupError."""
        ...


def is_public_address(address: str | None) -> bool:
    """True if *address* is a globally routable IP worth geolocating."""
    if not address:
        return False
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return False
    return not (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_multicast
        or ip.is_reserved
    )


class LocationResolver:
    """Turns a request's address and device id into a :class:`Resolution`."""

    def __init__(
        self,
        ip_locator: IpLocator | None,
        device_registry: DeviceRegistry | None = None,
        sentinels: Sequence[tuple[float, float]] = ((0.0, 0.0),),
    ) -> None:
        self._ip_locator = ip_locator
        self._device_registry = device_registry
        self._sentinels = list(sentinels)

    def is_sentinel(self, location: Location) -> bool:
        """True if *location* is one of the configured default answers."""
        point = (location.latitude, location.longitude)
        return any(
            distance.geodesic(point, sentinel).km <= SENTINEL_TOLERANCE_KM
            for sentinel in self._sentinels
        )

    async def _from_ip(self, address: str | None) -> Location | None:
        if self._ip_locator is None:
            return None
        if not is_public_address(address):
            logger.info('[location] Skipping IP geolocation for %r', address)
            return None
        assert address is not None
        try:
            location = await self._ip_locator.resolve(address.strip())
        except LocationLookupError as exc:
            logger.info('[location] IP geolocation failed for %s: %s', address, exc)
            return None
        if self.is_sentinel(location):
            logger.info(
                '[location] IP %s resolved to sentinel %.4f, %.4f; ignoring',
                address,
                location.latitude,
                location.longitude,
            )
            return None
        return location

    async def _from_device(self, device_id: str | None) -> Location | None:
        if self._device_registry is None or not device_id:
            return None
        try:
            zone = await self._device_registry.get_timezone(device_id)
        except LocationLookupError as exc:
            logger.info('[location] Device %s timezone lookup failed: %s', device_id, exc)
            return None
        location = timezones.location_for_timezone(zone)
        if location is None:
            logger.info('[location] Device %s timezone %r is not mapped', device_id, zone)
        return location

    async def resolve(
        self, address: str | None, device_id: str | None = None
    ) -> Resolution:
        """Run the cascade; never substitutes a fixed default place."""
        location = await self._from_ip(address)
        if location is not None:
            logger.info('[location] %s resolved by IP to %s', address, location.label)
            return Resolution(location=location, confidence=IP_CONFIDENCE)

        location = await self._from_device(device_id)
        if location is not None:
            logger.info(
                '[location] Device %s resolved by timezone %s to %s',
                device_id,
                location.timezone,
                location.label,
            )
            return Resolution(location=location, confidence=TIMEZONE_CONFIDENCE)

        logger.info('[location] Unresolved (address=%r, device=%r)', address, device_id)
        return UNRESOLVED
