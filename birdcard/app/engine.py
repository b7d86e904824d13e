"""The location-aware selection and consistency engine.

One state machine serves every entry point:

    resolve location -> day key + bucket -> cache get-or-select
        -> (location | global | anchor) -> publish -> record

Play events run the whole machine.  Track fetches only ever read what has
already been published.  The daily update seeds the global record.
"""

from __future__ import annotations

import datetime
import logging
from typing import Protocol

import pydantic

from .errors import (
    ExternalSelectionUnavailable,
    LocationUnresolved,
    NoPublishedItem,
    PublishFailed,
    SelectionExhausted,
)
from .location.bucket import GLOBAL_BUCKET, LocationBucketer
from .location.day_key import DayKey, DayKeyCalculator, anchor_index
from .location.resolver import LocationResolver
from .models import Item, Location, PlayStatus, Selection, SelectionTier, TrackKind
from .selection import anchors, regionality
from .selection.cache import SelectionCache
from .selection.regionality import RegionalityChecker
from .sessions.store import SessionStore, new_session_id

logger = logging.getLogger(__name__)

PLAY_EVENT = 'card.played'


class SelectionSource(Protocol):
    """External selection collaborator."""

    async def select_for_location(self, location: Location) -> Item | None:
        """A location-appropriate item, None when nothing was found."""
        ...

    async def select_from_anchor(self, index: int) -> Item:
        """The item for anchor *index*."""
        ...


class Publisher(Protocol):
    """Shared-card publishing collaborator."""

    async def publish(
        self, target_id: str, item: Item, session_id: str | None = None
    ) -> None:
        """Publish *item* or raise PublishFailed."""
        ...

    async def sync_display(
        self, target_id: str, item: Item, session_id: str | None = None
    ) -> bool:
        """Publish *item* only if the target shows something else."""
        ...

    def last_published(self, target_id: str) -> Item | None:
        """Last item published to *target_id*."""
        ...

    def last_published_at(self, target_id: str) -> datetime.datetime | None:
        """When the last item was published to *target_id*."""
        ...


class SelectionPolicy(pydantic.BaseModel):
    """Fallback order and caching rules shared by all entry points."""

    model_config = pydantic.ConfigDict(frozen=True)

    tiers: tuple[SelectionTier, ...] = (
        SelectionTier.LOCATION,
        SelectionTier.GLOBAL,
        SelectionTier.ANCHOR,
    )
    # Run unresolved observers through the tiers; when off they are served
    # the global record (seeded from the anchor rotation) directly.
    cache_unresolved: bool = True


class PlayResult(pydantic.BaseModel):
    """Outcome of one play event."""

    status: PlayStatus
    target_id: str | None = None
    item_id: str | None = None
    common_name: str | None = None
    date: str | None = None
    location: str | None = None
    location_source: str | None = None
    confidence: float = 0.0
    bucket: str | None = None
    tier: SelectionTier | None = None
    cache_hit: bool = False
    is_regional: bool = False
    regional_message: str = ''


class TrackResult(pydantic.BaseModel):
    """Outcome of one track fetch."""

    session_id: str
    kind: TrackKind
    item: Item
    url: str
    new_session: bool = False
    republished: bool = False


def track_asset_url(assets_base_url: str, kind: TrackKind, item: Item) -> str:
    """Where the audio for one track of *item* lives."""
    if kind == TrackKind.SONG and item.audio_url:
        return item.audio_url
    return f'{assets_base_url.rstrip("/")}/{kind.value}/{item.item_id}.mp3'


class CardEngine:
    """Wires the location, selection and session layers together."""

    def __init__(
        self,
        *,
        resolver: LocationResolver,
        day_keys: DayKeyCalculator,
        bucketer: LocationBucketer,
        cache: SelectionCache,
        sessions: SessionStore,
        source: SelectionSource,
        publisher: Publisher,
        regionality_checker: RegionalityChecker,
        assets_base_url: str,
        default_target: str = '',
        policy: SelectionPolicy | None = None,
    ) -> None:
        self.resolver = resolver
        self.day_keys = day_keys
        self.bucketer = bucketer
        self.cache = cache
        self.sessions = sessions
        self.source = source
        self.publisher = publisher
        self.regionality = regionality_checker
        self.assets_base_url = assets_base_url
        self.default_target = default_target
        self.policy = policy or SelectionPolicy()

    def target_for(self, target_id: str | None) -> str:
        """The event's target, or the configured default card."""
        target = target_id or self.default_target
        if not target:
            raise ValueError('no target card id supplied or configured')
        return target

    # ------------------------------------------------------------------
    # Selection tiers
    # ------------------------------------------------------------------

    async def _select_anchor(self, target_id: str, day: DayKey) -> Selection:
        """Pick the day's anchor item and publish it."""
        index = anchor_index(day.date, len(anchors.ANCHOR_LOCATIONS))
        try:
            item = await self.source.select_from_anchor(index)
        except ExternalSelectionUnavailable as exc:
            raise SelectionExhausted(f'anchor {index} unavailable: {exc}') from exc
        logger.info('[%s] Anchor %d for %s gave %s', target_id, index, day, item.item_id)
        await self.publisher.publish(target_id, item)
        return Selection(item=item, tier=SelectionTier.ANCHOR)

    async def _choose(
        self, target_id: str, day: DayKey, bucket: str, location: Location | None
    ) -> tuple[Selection, bool]:
        """Walk the policy tiers; returns the selection and whether it is published."""
        for tier in self.policy.tiers:
            if tier == SelectionTier.LOCATION:
                try:
                    if location is None:
                        raise LocationUnresolved('observer location unknown')
                    item = await self.source.select_for_location(location)
                except (LocationUnresolved, ExternalSelectionUnavailable) as exc:
                    logger.info('[%s] Location tier skipped: %s', target_id, exc)
                    continue
                if item is not None:
                    return Selection(item=item, tier=tier), False
                logger.info('[%s] Nothing found near %s', target_id, location.label)

            elif tier == SelectionTier.GLOBAL:
                record = self.cache.lookup_global(target_id, day.value)
                if record is not None:
                    return Selection(item=record.item, tier=tier), False

            elif tier == SelectionTier.ANCHOR:
                if bucket == GLOBAL_BUCKET:
                    # Already inside the global key's critical section.
                    try:
                        return await self._select_anchor(target_id, day), True
                    except SelectionExhausted as exc:
                        logger.warning('[%s] %s', target_id, exc)
                        continue
                try:
                    record, hit = await self.cache.get_or_select(
                        target_id,
                        day.value,
                        GLOBAL_BUCKET,
                        lambda: self._select_anchor(target_id, day),
                    )
                except SelectionExhausted as exc:
                    logger.warning('[%s] %s', target_id, exc)
                    continue
                if hit:
                    return Selection(item=record.item, tier=SelectionTier.GLOBAL), False
                return Selection(item=record.item, tier=SelectionTier.ANCHOR), True

        raise SelectionExhausted(f'every selection tier failed for {target_id} on {day}')

    async def _select_and_publish(
        self, target_id: str, day: DayKey, bucket: str, location: Location | None
    ) -> Selection:
        selection, published = await self._choose(target_id, day, bucket, location)
        if published:
            return selection
        if selection.tier == SelectionTier.GLOBAL:
            # The global item is usually on the card already.
            await self.publisher.sync_display(target_id, selection.item)
        else:
            await self.publisher.publish(target_id, selection.item)
        return selection

    # ------------------------------------------------------------------
    # Play events
    # ------------------------------------------------------------------

    async def handle_play(
        self,
        event_type: str,
        target_id: str | None,
        address: str | None,
        device_id: str | None = None,
    ) -> PlayResult:
        """Run one play event through the state machine.

        Raises:
            PublishFailed: publishing failed; nothing was recorded.
            SelectionExhausted: no tier produced an item.
        """
        if event_type != PLAY_EVENT:
            logger.info('Ignoring event %r', event_type)
            return PlayResult(status=PlayStatus.IGNORED)
        target = self.target_for(target_id)

        resolution = await self.resolver.resolve(address, device_id)
        location = resolution.location
        day = self.day_keys.compute(location)
        bucket = self.bucketer.bucket(location)
        logger.info('[%s] Play: day=%s bucket=%s', target, day, bucket)

        if location is None and not self.policy.cache_unresolved:
            selection, hit = await self._play_uncached(target, day)
        else:
            record, hit = await self.cache.get_or_select(
                target,
                day.value,
                bucket,
                lambda: self._select_and_publish(target, day, bucket, location),
            )
            selection = Selection(item=record.item, tier=record.tier)

        item = selection.item
        is_regional = False
        if location is not None:
            is_regional = await self.regionality.check(item, location)

        return PlayResult(
            status=PlayStatus.ALREADY_UPDATED if hit else PlayStatus.SUCCESS,
            target_id=target,
            item_id=item.item_id,
            common_name=item.common_name,
            date=day.value,
            location=location.label if location else None,
            location_source=location.source.value if location else None,
            confidence=resolution.confidence,
            bucket=bucket,
            tier=selection.tier,
            cache_hit=hit,
            is_regional=is_regional,
            regional_message=regionality.message(item, location, is_regional),
        )

    async def _play_uncached(self, target_id: str, day: DayKey) -> tuple[Selection, bool]:
        """Serve an unresolved observer straight from the day's global record.

        The policy tiers are skipped; a missing global record is filled from
        the anchor rotation under the global key's lock.
        """
        record, hit = await self.cache.get_or_select(
            target_id, day.value, GLOBAL_BUCKET, lambda: self._select_anchor(target_id, day)
        )
        tier = SelectionTier.GLOBAL if hit else SelectionTier.ANCHOR
        return Selection(item=record.item, tier=tier), hit

    # ------------------------------------------------------------------
    # Daily update
    # ------------------------------------------------------------------

    async def run_daily_update(self, target_id: str | None = None) -> PlayResult:
        """Seed today's (UTC) global record from the anchor rotation."""
        target = self.target_for(target_id)
        day = self.day_keys.compute(None)
        record, hit = await self.cache.get_or_select(
            target, day.value, GLOBAL_BUCKET, lambda: self._select_anchor(target, day)
        )
        logger.info(
            '[%s] Daily update for %s: %s (%s)',
            target,
            day,
            record.item_id,
            'already done' if hit else 'published',
        )
        return PlayResult(
            status=PlayStatus.ALREADY_UPDATED if hit else PlayStatus.SUCCESS,
            target_id=target,
            item_id=record.item_id,
            common_name=record.item.common_name,
            date=day.value,
            bucket=GLOBAL_BUCKET,
            tier=record.tier,
            cache_hit=hit,
        )

    # ------------------------------------------------------------------
    # Track fetches
    # ------------------------------------------------------------------

    async def _published_item(
        self, target_id: str, address: str | None, device_id: str | None
    ) -> tuple[Item, Location | None]:
        """Today's already-published item for this observer; never selects."""
        resolution = await self.resolver.resolve(address, device_id)
        location = resolution.location
        day = self.day_keys.compute(location)
        bucket = self.bucketer.bucket(location)

        record = self.cache.lookup(target_id, day.value, bucket)
        if record is None:
            record = self.cache.lookup_global(target_id, day.value)
        if record is not None:
            return record.item, location

        # Only what the card showed today for this observer; never yesterday's.
        item = self.publisher.last_published(target_id)
        published_at = self.publisher.last_published_at(target_id)
        if (
            item is not None
            and published_at is not None
            and self.day_keys.compute(location, published_at).value == day.value
        ):
            logger.info(
                '[%s] No record for %s/%s; using card item %s',
                target_id,
                day,
                bucket,
                item.item_id,
            )
            return item, location
        raise NoPublishedItem(f'nothing published to {target_id} yet')

    async def handle_track(
        self,
        kind: TrackKind,
        session_id: str | None,
        target_id: str | None,
        address: str | None = None,
        device_id: str | None = None,
    ) -> TrackResult:
        """Resolve or bind the session and return the track's asset URL.

        Raises:
            NoPublishedItem: no session and nothing published to bind to.
        """
        target = self.target_for(target_id)
        session_id = session_id or new_session_id(target)

        session, created = await self.sessions.resolve_or_bind(
            session_id, lambda: self._published_item(target, address, device_id)
        )

        republished = False
        if created:
            try:
                republished = await self.publisher.sync_display(target, session.item, session_id)
            except PublishFailed as exc:
                logger.warning('[%s] Display sync failed: %s', session_id, exc)

        url = track_asset_url(self.assets_base_url, kind, session.item)
        logger.info('[%s] %s -> %s', session_id, kind.value, session.item.item_id)
        return TrackResult(
            session_id=session_id,
            kind=kind,
            item=session.item,
            url=url,
            new_session=created,
            republished=republished,
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def sweep(self) -> dict[str, int]:
        """Evict superseded cache records and expired sessions."""
        return {
            'records': self.cache.sweep(),
            'sessions': self.sessions.sweep(),
        }

    def stats(self) -> dict[str, int]:
        """Cache and session counters."""
        stats = self.cache.stats()
        stats['sessions'] = len(self.sessions)
        return stats
