"""Selection cache: at most one selection and publish per (target, day, bucket).

The check ("has this key been selected?") and the act ("select, publish,
record") run inside one critical section scoped to the key.  Two observers
in the same bucket on the same day therefore never both reach the
expensive select function, while unrelated keys proceed in parallel.

A select function that raises leaves the key unrecorded, so the next call
for that key retries.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Awaitable, Callable

import pydantic

from ..keyed_lock import KeyedLock
from ..location.bucket import GLOBAL_BUCKET
from ..models import Clock, Selection, SelectionRecord, utc_now

logger = logging.getLogger(__name__)

SelectFn = Callable[[], Awaitable[Selection]]


class CacheKey(pydantic.BaseModel):
    """Identity of one selection."""

    model_config = pydantic.ConfigDict(frozen=True)

    target_id: str
    day_key: str
    location_bucket: str

    def __str__(self) -> str:
        return f'{self.target_id}_{self.day_key}_{self.location_bucket}'


class SelectionCache:
    """Memory-resident store of selection records.

    All access happens on one event loop; the per-key lock is what makes
    get-or-select atomic across the awaits inside the select function.
    """

    def __init__(self, clock: Clock = utc_now, retention_days: int = 1) -> None:
        self._clock = clock
        self._retention_days = retention_days
        self._records: dict[CacheKey, SelectionRecord] = {}
        self._locks: KeyedLock[CacheKey] = KeyedLock()
        self._last_sweep_day: datetime.date | None = None
        self._hits = 0
        self._misses = 0
        self._failures = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(
        self, target_id: str, day_key: str, location_bucket: str
    ) -> SelectionRecord | None:
        """Return the recorded selection for a key without ever selecting."""
        return self._records.get(CacheKey(
            target_id=target_id, day_key=day_key, location_bucket=location_bucket
        ))

    def lookup_global(self, target_id: str, day_key: str) -> SelectionRecord | None:
        """Return the day's global record for *target_id*, if any."""
        return self.lookup(target_id, day_key, GLOBAL_BUCKET)

    # ------------------------------------------------------------------
    # Get-or-select
    # ------------------------------------------------------------------

    async def get_or_select(
        self,
        target_id: str,
        day_key: str,
        location_bucket: str,
        select_fn: SelectFn,
    ) -> tuple[SelectionRecord, bool]:
        """Return ``(record, cache_hit)`` for a key, selecting at most once.

        *select_fn* runs only while this key's lock is held and only when no
        record exists.  Exceptions from it propagate and record nothing.
        """
        self._maybe_sweep()
        key = CacheKey(target_id=target_id, day_key=day_key, location_bucket=location_bucket)

        record = self._records.get(key)
        if record is not None:
            self._hits += 1
            return record, True

        async with self._locks.hold(key):
            record = self._records.get(key)
            if record is not None:
                self._hits += 1
                logger.debug('[cache] %s filled while waiting', key)
                return record, True

            logger.info('[cache] %s miss, selecting', key)
            try:
                selection = await select_fn()
            except Exception:
                self._failures += 1
                logger.info('[cache] %s selection failed; key left open for retry', key)
                raise

            record = SelectionRecord(
                target_id=target_id,
                day_key=day_key,
                location_bucket=location_bucket,
                item=selection.item,
                tier=selection.tier,
                selected_at=self._clock(),
            )
            self._records[key] = record
            self._misses += 1
            logger.info(
                '[cache] %s recorded %s (tier=%s)', key, record.item_id, record.tier.value
            )
            return record, False

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def _cutoff(self, now: datetime.datetime) -> str:
        # Local dates never trail UTC by more than a day, so anything older
        # than UTC-today minus the retention window is superseded everywhere.
        utc_day = now.astimezone(datetime.UTC).date()
        return (utc_day - datetime.timedelta(days=self._retention_days)).isoformat()

    def sweep(self, now: datetime.datetime | None = None) -> int:
        """Drop records for superseded days; keys with work in flight are kept."""
        cutoff = self._cutoff(now or self._clock())
        stale = [
            key
            for key in self._records
            if key.day_key < cutoff and not self._locks.is_busy(key)
        ]
        for key in stale:
            del self._records[key]
        if stale:
            logger.info('[cache] Swept %d records older than %s', len(stale), cutoff)
        return len(stale)

    def _maybe_sweep(self) -> None:
        today = self._clock().astimezone(datetime.UTC).date()
        if self._last_sweep_day != today:
            self._last_sweep_day = today
            self.sweep()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, int]:
        """Counters for the debug endpoint."""
        buckets = {
            key.location_bucket
            for key in self._records
            if key.location_bucket != GLOBAL_BUCKET
        }
        return {
            'total_entries': len(self._records),
            'unique_locations': len(buckets),
            'hits': self._hits,
            'misses': self._misses,
            'failures': self._failures,
            'in_flight': len(self._locks),
        }

    def __len__(self) -> int:
        return len(self._records)
