"""Unit tests for SelectionCache."""

import asyncio
import datetime
import unittest

from birdcard.app.errors import PublishFailed
from birdcard.app.location.bucket import GLOBAL_BUCKET
from birdcard.app.models import Item, Selection, SelectionTier
from birdcard.app.selection import cache
from birdcard.app.testing import NORTHERN_CARDINAL, FixedClock

BUCKET = '30.3,-97.7'
BLUE_JAY = Item.from_name('Blue Jay')


class CountingSelect:
    """A select function that counts calls and can be told to fail."""

    def __init__(self, *items: Item) -> None:
        self.items = list(items)
        self.calls = 0
        self.fail = False

    async def __call__(self) -> Selection:
        self.calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise PublishFailed('CARD1', self.items[0].item_id, 'boom')
        return Selection(item=self.items.pop(0), tier=SelectionTier.LOCATION)


class TestGetOrSelect(unittest.IsolatedAsyncioTestCase):
    """Tests for SelectionCache.get_or_select()."""

    def setUp(self) -> None:
        """Cache on a fixed clock."""
        self.clock = FixedClock(datetime.datetime(2024, 5, 1, 17, 0, tzinfo=datetime.UTC))
        self.cache = cache.SelectionCache(clock=self.clock)

    async def test_miss_then_hit(self) -> None:
        """The first call selects, the second is a hit with the same item."""
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY)
        record, hit = await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        self.assertFalse(hit)
        self.assertEqual(record.item_id, 'Northern_Cardinal')
        self.assertEqual(record.selected_at, self.clock.now)

        record, hit = await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        self.assertTrue(hit)
        self.assertEqual(record.item_id, 'Northern_Cardinal')
        self.assertEqual(select.calls, 1)

    async def test_concurrent_calls_select_once(self) -> None:
        """N concurrent callers trigger one selection and agree on the item."""
        select = CountingSelect(NORTHERN_CARDINAL, *[BLUE_JAY] * 9)
        results = await asyncio.gather(
            *(
                self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
                for _ in range(10)
            )
        )
        self.assertEqual(select.calls, 1)
        self.assertEqual({record.item_id for record, _ in results}, {'Northern_Cardinal'})
        self.assertEqual(sum(1 for _, hit in results if not hit), 1)

    async def test_day_rollover(self) -> None:
        """A new day key selects independently of the old one."""
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY)
        await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        record, hit = await self.cache.get_or_select('CARD1', '2024-05-02', BUCKET, select)
        self.assertFalse(hit)
        self.assertEqual(record.item_id, 'Blue_Jay')
        self.assertEqual(select.calls, 2)

    async def test_keys_are_independent(self) -> None:
        """Different targets and buckets do not share records."""
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY, NORTHERN_CARDINAL)
        await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        await self.cache.get_or_select('CARD2', '2024-05-01', BUCKET, select)
        await self.cache.get_or_select('CARD1', '2024-05-01', '51.5,-0.1', select)
        self.assertEqual(select.calls, 3)

    async def test_failure_leaves_key_open(self) -> None:
        """A failed publish records nothing and the next call retries."""
        select = CountingSelect(NORTHERN_CARDINAL)
        select.fail = True
        with self.assertRaises(PublishFailed):
            await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        self.assertIsNone(self.cache.lookup('CARD1', '2024-05-01', BUCKET))

        select.fail = False
        record, hit = await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        self.assertFalse(hit)
        self.assertEqual(record.item_id, 'Northern_Cardinal')
        self.assertEqual(select.calls, 2)
        self.assertEqual(self.cache.stats()['failures'], 1)

    async def test_waiters_retry_after_failure(self) -> None:
        """Callers queued behind a failed selection get their own attempt."""
        select = CountingSelect(NORTHERN_CARDINAL, NORTHERN_CARDINAL)
        select.fail = True

        async def first() -> None:
            with self.assertRaises(PublishFailed):
                await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
            select.fail = False

        async def second() -> tuple[object, bool]:
            return await self.cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)

        _, (_, hit) = await asyncio.gather(first(), second())
        self.assertFalse(hit)
        self.assertEqual(select.calls, 2)

    async def test_lookup_never_selects(self) -> None:
        """lookup() is read-only."""
        self.assertIsNone(self.cache.lookup('CARD1', '2024-05-01', BUCKET))
        self.assertIsNone(self.cache.lookup_global('CARD1', '2024-05-01'))
        self.assertEqual(len(self.cache), 0)

    async def test_lookup_global(self) -> None:
        """The global record lives under the reserved bucket."""
        await self.cache.get_or_select(
            'CARD1', '2024-05-01', GLOBAL_BUCKET, CountingSelect(BLUE_JAY)
        )
        record = self.cache.lookup_global('CARD1', '2024-05-01')
        assert record is not None
        self.assertEqual(record.item_id, 'Blue_Jay')


class TestSweep(unittest.IsolatedAsyncioTestCase):
    """Tests for eviction of superseded days."""

    async def test_sweep_drops_old_days(self) -> None:
        """Records older than UTC-yesterday are removed."""
        clock = FixedClock(datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.UTC))
        selection_cache = cache.SelectionCache(clock=clock)
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY, NORTHERN_CARDINAL)
        await selection_cache.get_or_select('CARD1', '2024-04-29', BUCKET, select)
        await selection_cache.get_or_select('CARD1', '2024-04-30', BUCKET, select)
        await selection_cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)

        self.assertEqual(selection_cache.sweep(), 1)
        self.assertIsNone(selection_cache.lookup('CARD1', '2024-04-29', BUCKET))
        self.assertIsNotNone(selection_cache.lookup('CARD1', '2024-04-30', BUCKET))

    async def test_lazy_sweep_on_new_utc_day(self) -> None:
        """The first access on a new UTC day evicts stale records."""
        clock = FixedClock(datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.UTC))
        selection_cache = cache.SelectionCache(clock=clock)
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY)
        await selection_cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)

        clock.advance(days=2)
        await selection_cache.get_or_select('CARD1', '2024-05-03', BUCKET, select)
        self.assertIsNone(selection_cache.lookup('CARD1', '2024-05-01', BUCKET))
        self.assertEqual(len(selection_cache), 1)

    async def test_sweep_skips_in_flight_keys(self) -> None:
        """A stale key that a coroutine holds or waits on is not evicted."""
        clock = FixedClock(datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.UTC))
        selection_cache = cache.SelectionCache(clock=clock)
        await selection_cache.get_or_select(
            'CARD1', '2024-04-20', BUCKET, CountingSelect(NORTHERN_CARDINAL)
        )
        key = cache.CacheKey(target_id='CARD1', day_key='2024-04-20', location_bucket=BUCKET)

        async with selection_cache._locks.hold(key):
            self.assertEqual(selection_cache.stats()['in_flight'], 1)
            self.assertEqual(selection_cache.sweep(), 0)
        self.assertEqual(selection_cache.sweep(), 1)


class TestStats(unittest.IsolatedAsyncioTestCase):
    """Tests for SelectionCache.stats()."""

    async def test_counts(self) -> None:
        """Entries, buckets, hits and misses are reported."""
        clock = FixedClock(datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.UTC))
        selection_cache = cache.SelectionCache(clock=clock)
        select = CountingSelect(NORTHERN_CARDINAL, BLUE_JAY, BLUE_JAY)
        await selection_cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        await selection_cache.get_or_select('CARD1', '2024-05-01', BUCKET, select)
        await selection_cache.get_or_select('CARD1', '2024-05-01', '51.5,-0.1', select)
        await selection_cache.get_or_select('CARD1', '2024-05-01', GLOBAL_BUCKET, select)

        stats = selection_cache.stats()
        self.assertEqual(stats['total_entries'], 3)
        self.assertEqual(stats['unique_locations'], 2)
        self.assertEqual(stats['hits'], 1)
        self.assertEqual(stats['misses'], 3)
        self.assertEqual(stats['in_flight'], 0)


if __name__ == '__main__':
    unittest.main()
