"""Data models shared by the location, selection and session layers."""

from __future__ import annotations

import datetime
import enum
from collections.abc import Callable

import pydantic

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    """Default clock: the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.UTC)


def make_item_id(common_name: str) -> str:
    """Return the item id for a bird's common name (``'Northern_Cardinal'``)."""
    return '_'.join(common_name.split())


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


class LocationSource(enum.StrEnum):
    """Where a location came from; gates per-location caching."""

    IP = 'ip'
    DEVICE_TIMEZONE = 'device_timezone'
    GLOBAL_FALLBACK = 'global_fallback'


class Location(pydantic.BaseModel):
    """A resolved observer (or anchor) location."""

    model_config = pydantic.ConfigDict(frozen=True)

    latitude: float
    longitude: float
    city_name: str | None = None
    region_name: str | None = None
    country_name: str | None = None
    source: LocationSource
    # IANA name reported by a device registry, when known.
    timezone: str | None = None

    @property
    def label(self) -> str:
        """Human-readable place name, falling back to coordinates."""
        if self.city_name:
            return self.city_name
        return f'{self.latitude:.2f}, {self.longitude:.2f}'


class Resolution(pydantic.BaseModel):
    """Outcome of the location cascade; ``location is None`` means unresolved."""

    model_config = pydantic.ConfigDict(frozen=True)

    location: Location | None = None
    confidence: float = 0.0

    @property
    def is_resolved(self) -> bool:
        """True when a strategy produced a location."""
        return self.location is not None


UNRESOLVED = Resolution()


# ---------------------------------------------------------------------------
# Items and selections
# ---------------------------------------------------------------------------


class Item(pydantic.BaseModel):
    """One selectable unit of content (a bird)."""

    model_config = pydantic.ConfigDict(frozen=True)

    item_id: str
    common_name: str
    scientific_name: str | None = None
    species_code: str | None = None
    audio_url: str | None = None
    icon_id: str | None = None

    @classmethod
    def from_name(cls, common_name: str, **kwargs: str | None) -> Item:
        """Build an item whose id is derived from *common_name*."""
        return cls(item_id=make_item_id(common_name), common_name=common_name, **kwargs)


class SelectionTier(enum.StrEnum):
    """Which fallback tier produced a selection."""

    LOCATION = 'location'
    GLOBAL = 'global'
    ANCHOR = 'anchor'


class Selection(pydantic.BaseModel):
    """An item chosen (and published) by a select function."""

    model_config = pydantic.ConfigDict(frozen=True)

    item: Item
    tier: SelectionTier


class SelectionRecord(pydantic.BaseModel):
    """The single selection held for one (target, day, bucket) key."""

    model_config = pydantic.ConfigDict(frozen=True)

    target_id: str
    day_key: str
    location_bucket: str
    item: Item
    tier: SelectionTier
    selected_at: datetime.datetime

    @property
    def item_id(self) -> str:
        """Id of the recorded item."""
        return self.item.item_id


# ---------------------------------------------------------------------------
# Sessions and tracks
# ---------------------------------------------------------------------------


class Session(pydantic.BaseModel):
    """Binding of one playback sitting to an item."""

    model_config = pydantic.ConfigDict(frozen=True)

    session_id: str
    item: Item
    location: Location | None = None
    created_at: datetime.datetime
    expires_at: datetime.datetime

    @property
    def bound_item_id(self) -> str:
        """Id of the item this session plays."""
        return self.item.item_id

    def is_expired(self, now: datetime.datetime) -> bool:
        """True once *now* has reached the session's expiry."""
        return now >= self.expires_at


class TrackKind(enum.StrEnum):
    """The five tracks of one playback, in play order."""

    INTRO = 'intro'
    ANNOUNCEMENT = 'announcement'
    SONG = 'bird-song'
    GUIDE = 'description'
    OUTRO = 'outro'


class PlayStatus(enum.StrEnum):
    """Outcome reported for a play event."""

    SUCCESS = 'success'
    ALREADY_UPDATED = 'already_updated'
    ERROR = 'error'
    IGNORED = 'ignored'
