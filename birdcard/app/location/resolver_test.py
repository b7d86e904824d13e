"""Unit tests for the location cascade."""

import unittest

from birdcard.app.location import resolver
from birdcard.app.models import Location, LocationSource
from birdcard.app.testing import AUSTIN, AUSTIN_IP, FakeDeviceRegistry, FakeIpLocator


class TestIsPublicAddress(unittest.TestCase):
    """Tests for is_public_address()."""

    def test_public(self) -> None:
        """Routable addresses are geolocated."""
        self.assertTrue(resolver.is_public_address('8.8.8.8'))
        self.assertTrue(resolver.is_public_address(' 2001:4860:4860::8888 '))

    def test_not_public(self) -> None:
        """Empty, loopback, private and link-local addresses are skipped."""
        skipped = [None, '', '127.0.0.1', '10.1.2.3', '192.168.0.5', '169.254.1.1', '::1']
        for address in skipped:
            with self.subTest(address=address):
                self.assertFalse(resolver.is_public_address(address))

    def test_garbage(self) -> None:
        """Unparseable addresses are skipped."""
        self.assertFalse(resolver.is_public_address('not-an-ip'))


class TestLocationResolver(unittest.IsolatedAsyncioTestCase):
    """Tests for LocationResolver.resolve()."""

    async def test_ip_first(self) -> None:
        """A good IP answer wins and the device registry is not asked."""
        devices = FakeDeviceRegistry({'dev1': 'Europe/Paris'})
        res = resolver.LocationResolver(FakeIpLocator({AUSTIN_IP: AUSTIN}), devices)
        resolution = await res.resolve(AUSTIN_IP, 'dev1')
        self.assertEqual(resolution.location, AUSTIN)
        self.assertEqual(resolution.confidence, resolver.IP_CONFIDENCE)
        self.assertEqual(devices.calls, [])

    async def test_ip_failure_falls_back_to_device(self) -> None:
        """A failed IP lookup falls through to the device timezone."""
        res = resolver.LocationResolver(
            FakeIpLocator({}), FakeDeviceRegistry({'dev1': 'Europe/Paris'})
        )
        resolution = await res.resolve('8.8.8.8', 'dev1')
        assert resolution.location is not None
        self.assertEqual(resolution.location.city_name, 'Paris')
        self.assertEqual(resolution.location.source, LocationSource.DEVICE_TIMEZONE)
        self.assertEqual(resolution.confidence, resolver.TIMEZONE_CONFIDENCE)

    async def test_sentinel_treated_as_failure(self) -> None:
        """A provider's 0,0 default answer is ignored."""
        null_island = Location(latitude=0.001, longitude=-0.002, source=LocationSource.IP)
        res = resolver.LocationResolver(
            FakeIpLocator({'8.8.8.8': null_island}),
            FakeDeviceRegistry({'dev1': 'US/Eastern'}),
        )
        resolution = await res.resolve('8.8.8.8', 'dev1')
        assert resolution.location is not None
        self.assertEqual(resolution.location.city_name, 'New York')

    async def test_custom_sentinels(self) -> None:
        """Configured sentinels replace the default."""
        res = resolver.LocationResolver(FakeIpLocator({}), sentinels=[(30.27, -97.74)])
        self.assertTrue(res.is_sentinel(AUSTIN))
        self.assertFalse(
            res.is_sentinel(Location(latitude=0.0, longitude=0.0, source=LocationSource.IP))
        )

    async def test_private_address_not_geolocated(self) -> None:
        """Private addresses never reach the IP locator."""
        locator = FakeIpLocator({'192.168.1.10': AUSTIN})
        res = resolver.LocationResolver(locator)
        resolution = await res.resolve('192.168.1.10')
        self.assertFalse(resolution.is_resolved)
        self.assertEqual(locator.calls, [])

    async def test_unresolved_has_no_default_place(self) -> None:
        """When every strategy fails the result is explicitly unresolved."""
        res = resolver.LocationResolver(
            FakeIpLocator({}), FakeDeviceRegistry({'dev1': 'Mars/Base'})
        )
        resolution = await res.resolve('8.8.8.8', 'dev1')
        self.assertIsNone(resolution.location)
        self.assertEqual(resolution.confidence, 0.0)

    async def test_device_lookup_failure(self) -> None:
        """A registry error is absorbed."""
        res = resolver.LocationResolver(FakeIpLocator({}), FakeDeviceRegistry({}))
        resolution = await res.resolve(None, 'missing')
        self.assertFalse(resolution.is_resolved)


if __name__ == '__main__':
    unittest.main()
