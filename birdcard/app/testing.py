"""In-memory collaborators and clocks for tests."""

import asyncio
import dataclasses
import datetime
from typing import Any

from .clients.yoto import YotoAPIError
from .engine import CardEngine, SelectionPolicy
from .errors import (
    ExternalSelectionUnavailable,
    LocationLookupError,
    ObservationSourceError,
)
from .location.bucket import LocationBucketer
from .location.day_key import DayKeyCalculator
from .location.resolver import LocationResolver
from .models import Item, Location, LocationSource
from .publisher import CardPublisher
from .selection import anchors
from .selection.cache import SelectionCache
from .selection.regionality import RegionalityChecker
from .sessions.store import SessionStore

AUSTIN = Location(
    latitude=30.27,
    longitude=-97.74,
    city_name='Austin',
    region_name='Texas',
    country_name='United States',
    source=LocationSource.IP,
)
AUSTIN_IP = '24.153.0.10'

NORTHERN_CARDINAL = Item.from_name(
    'Northern Cardinal', scientific_name='Cardinalis cardinalis', species_code='norcar'
)


class FixedClock:
    """A settable clock; call it to read the time."""

    def __init__(self, now: datetime.datetime) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += datetime.timedelta(**kwargs)


class FakeIpLocator:
    def __init__(self, locations: dict[str, Location] | None = None) -> None:
        self.locations = dict(locations or {})
        self.calls: list[str] = []

    async def resolve(self, ip_address: str) -> Location:
        self.calls.append(ip_address)
        try:
            return self.locations[ip_address]
        except KeyError:
            raise LocationLookupError(f'unknown address {ip_address}') from None


class FakeDeviceRegistry:
    def __init__(self, zones: dict[str, str] | None = None) -> None:
        self.zones = dict(zones or {})
        self.calls: list[str] = []

    async def get_timezone(self, device_id: str) -> str:
        self.calls.append(device_id)
        try:
            return self.zones[device_id]
        except KeyError:
            raise LocationLookupError(f'unknown device {device_id}') from None


class FakeSelectionSource:
    """Returns ``items`` in order for location searches; anchors by index."""

    def __init__(
        self,
        items: list[Item | None] | None = None,
        *,
        unavailable: bool = False,
    ) -> None:
        self.items = list(items or [])
        self.unavailable = unavailable
        self.location_calls: list[Location] = []
        self.anchor_calls: list[int] = []

    async def select_for_location(self, location: Location) -> Item | None:
        self.location_calls.append(location)
        # Yield so concurrent callers interleave.
        await asyncio.sleep(0)
        if self.unavailable:
            raise ExternalSelectionUnavailable('selection source down')
        if not self.items:
            return None
        return self.items.pop(0)

    async def select_from_anchor(self, index: int) -> Item:
        self.anchor_calls.append(index)
        await asyncio.sleep(0)
        return anchors.worldwide_bird(index)


class FakeContentAPI:
    """Records card updates; set ``fail`` to reject them."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail = False

    async def update_content(self, card_id: str, content: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise YotoAPIError('503 - unavailable')
        self.updates.append((card_id, content))


class FakeObservationSource:
    def __init__(self, count: int = 0, *, fail: bool = False) -> None:
        self.count = count
        self.fail = fail
        self.calls = 0

    async def occurrences_near(
        self, item: Item, location: Location, radius_km: int, window_days: int
    ) -> int:
        self.calls += 1
        if self.fail:
            raise ObservationSourceError('observations unavailable')
        return self.count


@dataclasses.dataclass
class Harness:
    """An engine wired to fakes, with the fakes exposed for assertions."""

    engine: CardEngine
    clock: FixedClock
    ip_locator: FakeIpLocator
    devices: FakeDeviceRegistry
    source: FakeSelectionSource
    content_api: FakeContentAPI
    observations: FakeObservationSource
    publisher: CardPublisher


def make_harness(
    now: datetime.datetime,
    *,
    items: list[Item | None] | None = None,
    locations: dict[str, Location] | None = None,
    zones: dict[str, str] | None = None,
    policy: SelectionPolicy | None = None,
    default_target: str = 'CARD1',
) -> Harness:
    clock = FixedClock(now)
    ip_locator = FakeIpLocator(locations if locations is not None else {AUSTIN_IP: AUSTIN})
    devices = FakeDeviceRegistry(zones)
    source = FakeSelectionSource(items)
    content_api = FakeContentAPI()
    observations = FakeObservationSource()
    publisher = CardPublisher(content_api, 'https://birds.example.com', clock=clock)
    engine = CardEngine(
        resolver=LocationResolver(ip_locator, devices),
        day_keys=DayKeyCalculator(clock=clock),
        bucketer=LocationBucketer(1),
        cache=SelectionCache(clock=clock),
        sessions=SessionStore(clock=clock),
        source=source,
        publisher=publisher,
        regionality_checker=RegionalityChecker(observations),
        assets_base_url='https://assets.example.com',
        default_target=default_target,
        policy=policy,
    )
    return Harness(
        engine=engine,
        clock=clock,
        ip_locator=ip_locator,
        devices=devices,
        source=source,
        content_api=content_api,
        observations=observations,
        publisher=publisher,
    )
