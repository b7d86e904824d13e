"""Publishing the chosen bird to the shared Yoto card.

The card is rewritten as five streaming chapters whose track URLs point
back at this service, so the audio actually played is decided per session
at fetch time.  A per-target ledger remembers what was last published.
"""

from __future__ import annotations

import datetime
import logging
import urllib.parse
from typing import Any, Protocol

from .clients.yoto import YotoAPIError
from .errors import PublishFailed
from .keyed_lock import KeyedLock
from .models import Clock, Item, TrackKind, utc_now
from .sessions.store import new_session_id

logger = logging.getLogger(__name__)

CARD_TITLE = 'Bird Song Explorer'

# Meadowlark, used when a bird has no icon of its own.
DEFAULT_BIRD_ICON = 'yoto:#OOKWbJLOXojHvDuWdJLWs91LVP0yA9s8FBX0fQ4xP7Y'
RADIO_ICON = 'yoto:#mmQkTUoEDBtnNVJNZy10GH3_c58aybuOeNoJv5pTo1Y'
BINOCULARS_ICON = 'yoto:#Cz1-d_jBfvwrbtt-CCyGS3T1mgASHQ8BDhzvtJ2J6Wg'
BOOK_ICON = 'yoto:#oCMXp05T6goR11wDmp2jr4KCEi8_i1KBfISZgKWyU48'
HIKING_BOOT_ICON = 'yoto:#kmmtUHk9_SEN1dTOSXJyeCjEVkxXmHwWDs36SMVqtYQ'

# (kind, title, nominal duration in seconds, icon); None means the bird icon.
_CHAPTERS: list[tuple[TrackKind, str, int, str | None]] = [
    (TrackKind.INTRO, 'Welcome, Explorers!', 30, RADIO_ICON),
    (TrackKind.ANNOUNCEMENT, "Who's Singing Today?", 10, BINOCULARS_ICON),
    (TrackKind.SONG, '{name} Song', 30, None),
    (TrackKind.GUIDE, "Bird Explorer's Guide", 60, BOOK_ICON),
    (TrackKind.OUTRO, 'Happy Exploring!', 20, HIKING_BOOT_ICON),
]


class ContentAPI(Protocol):
    """External publish API."""

    async def update_content(self, card_id: str, content: dict[str, Any]) -> None:
        """Replace a card's content or raise YotoAPIError."""
        ...


def stream_url(base_url: str, kind: TrackKind, session_id: str, target_id: str) -> str:
    """URL of one streaming track on this service."""
    query = urllib.parse.urlencode({'session': session_id, 'card': target_id})
    return f'{base_url}/api/v1/stream/{kind.value}?{query}'


def build_content(
    target_id: str, item: Item, base_url: str, session_id: str
) -> dict[str, Any]:
    """Build the streaming card body for *item*."""
    bird_icon = item.icon_id or DEFAULT_BIRD_ICON
    chapters: list[dict[str, Any]] = []
    for position, (kind, title, duration, icon) in enumerate(_CHAPTERS, start=1):
        key = f'{position:02d}'
        label = str(position)
        title = title.format(name=item.common_name)
        display = {'icon16x16': icon or bird_icon}
        chapters.append({
            'key': key,
            'title': title,
            'overlayLabel': label,
            'display': display,
            'tracks': [
                {
                    'key': '01',
                    'title': title,
                    'trackUrl': stream_url(base_url, kind, session_id, target_id),
                    'type': 'stream',
                    'format': 'mp3',
                    'duration': duration,
                    'overlayLabel': label,
                    'display': display,
                }
            ],
        })
    return {
        'cardId': target_id,
        'title': CARD_TITLE,
        'content': {'chapters': chapters},
        'metadata': {'description': f"Today's bird: {item.common_name}"},
    }


class CardPublisher:
    """Publishes items to targets and keeps a ledger of the last one per target."""

    def __init__(self, api: ContentAPI, base_url: str, clock: Clock = utc_now) -> None:
        self._api = api
        self._base_url = base_url.rstrip('/')
        self._clock = clock
        self._ledger: dict[str, tuple[Item, datetime.datetime]] = {}
        self._locks: KeyedLock[str] = KeyedLock()
        self.publish_count = 0

    def last_published(self, target_id: str) -> Item | None:
        """The item most recently published to *target_id* by this process."""
        entry = self._ledger.get(target_id)
        return entry[0] if entry else None

    def last_published_at(self, target_id: str) -> datetime.datetime | None:
        """When :meth:`last_published` went out."""
        entry = self._ledger.get(target_id)
        return entry[1] if entry else None

    async def _publish_locked(self, target_id: str, item: Item, session_id: str) -> None:
        content = build_content(target_id, item, self._base_url, session_id)
        try:
            await self._api.update_content(target_id, content)
        except YotoAPIError as exc:
            logger.error('[%s] Publish of %s failed: %s', target_id, item.item_id, exc)
            raise PublishFailed(target_id, item.item_id, str(exc)) from exc
        self._ledger[target_id] = (item, self._clock())
        self.publish_count += 1
        logger.info('[%s] Published %s (session %s)', target_id, item.item_id, session_id)

    async def publish(
        self, target_id: str, item: Item, session_id: str | None = None
    ) -> None:
        """Publish *item* to *target_id*.

        Raises:
            PublishFailed: the publish API rejected the update; the ledger
                is left unchanged.
        """
        async with self._locks.hold(target_id):
            await self._publish_locked(
                target_id, item, session_id or new_session_id(target_id)
            )

    async def sync_display(
        self, target_id: str, item: Item, session_id: str | None = None
    ) -> bool:
        """Re-publish *item* only if it is not what *target_id* last showed.

        Returns whether a publish happened.
        """
        async with self._locks.hold(target_id):
            current = self.last_published(target_id)
            if current is not None and current.item_id == item.item_id:
                return False
            logger.info(
                '[%s] Card shows %s, session bound to %s; re-publishing',
                target_id,
                current.item_id if current else None,
                item.item_id,
            )
            await self._publish_locked(
                target_id, item, session_id or new_session_id(target_id)
            )
            return True
