"""Yoto API client: device registry and card content publishing."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import LocationLookupError

logger = logging.getLogger(__name__)


class YotoAPIError(Exception):
    """A Yoto content call failed."""


class YotoClient:
    """Calls the Yoto API with a pre-issued bearer token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        access_token: str,
        base_url: str = 'https://api.yotoplay.com',
    ) -> None:
        self._http = http
        self._access_token = access_token
        self._base_url = base_url.rstrip('/')

    def _headers(self) -> dict[str, str]:
        return {
            'Authorization': f'Bearer {self._access_token}',
            'accept': 'application/json',
        }

    async def get_timezone(self, device_id: str) -> str:
        """Return the ``geoTimezone`` configured on a player.

        Raises:
            LocationLookupError: the call failed or the device has no timezone.
        """
        try:
            response = await self._http.get(
                f'{self._base_url}/device-v2/{device_id}/config', headers=self._headers()
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LocationLookupError(f'device config for {device_id} failed: {exc}') from exc

        device: dict[str, Any] = {}
        if isinstance(data, dict):
            device = data.get('device') or {}
        zone = (device.get('config') or {}).get('geoTimezone')
        if not isinstance(zone, str) or not zone.strip():
            raise LocationLookupError(f'device {device_id} has no timezone configured')
        return zone.strip()

    async def update_content(self, card_id: str, content: dict[str, Any]) -> None:
        """Replace the content of *card_id*.

        Raises:
            YotoAPIError: on transport errors or a non-2xx response.
        """
        try:
            response = await self._http.put(
                f'{self._base_url}/content/{card_id}',
                json=content,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise YotoAPIError(f'update of {card_id} failed: {exc}') from exc
        if response.is_error:
            raise YotoAPIError(
                f'update of {card_id} failed: {response.status_code} - {response.text[:200]}'
            )
        logger.info('[yoto] Updated card %s', card_id)
