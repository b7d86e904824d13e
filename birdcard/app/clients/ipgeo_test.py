"""Unit tests for the ip-api.com client."""

import unittest

import httpx

from birdcard.app.clients import ipgeo
from birdcard.app.errors import LocationLookupError
from birdcard.app.models import LocationSource


def client_for(handler) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestIpApiClient(unittest.IsolatedAsyncioTestCase):
    """Tests for IpApiClient.resolve()."""

    async def test_success(self) -> None:
        """A success payload becomes an IP-sourced location."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    'status': 'success',
                    'city': 'Austin',
                    'regionName': 'Texas',
                    'country': 'United States',
                    'lat': 30.2672,
                    'lon': -97.7431,
                },
            )

        async with client_for(handler) as http:
            location = await ipgeo.IpApiClient(http).resolve('8.8.8.8')

        self.assertEqual(location.city_name, 'Austin')
        self.assertEqual(location.region_name, 'Texas')
        self.assertAlmostEqual(location.latitude, 30.2672)
        self.assertEqual(location.source, LocationSource.IP)
        self.assertEqual(seen[0].url.path, '/json/8.8.8.8')
        self.assertIn('lat', seen[0].url.params['fields'])

    async def test_fail_status(self) -> None:
        """A 'fail' status raises LocationLookupError with the message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'status': 'fail', 'message': 'reserved range'})

        async with client_for(handler) as http:
            with self.assertRaisesRegex(LocationLookupError, 'reserved range'):
                await ipgeo.IpApiClient(http).resolve('8.8.8.8')

    async def test_http_error(self) -> None:
        """HTTP errors are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        async with client_for(handler) as http:
            with self.assertRaises(LocationLookupError):
                await ipgeo.IpApiClient(http).resolve('8.8.8.8')

    async def test_missing_coordinates(self) -> None:
        """A success without coordinates is still a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'status': 'success', 'city': 'Austin'})

        async with client_for(handler) as http:
            with self.assertRaises(LocationLookupError):
                await ipgeo.IpApiClient(http).resolve('8.8.8.8')


if __name__ == '__main__':
    unittest.main()
