"""Tests del WindowCache sobre un archivo SQLite temporal."""

import asyncio

import pytest

from conftest import RecordingPublisher, make_series
from marketfeed.application.ports.window_cache import NullWindowCache
from marketfeed.domain.events.feed_events import ERROR_TOPIC
from marketfeed.infrastructure.persistence.database import DatabaseManager
from marketfeed.infrastructure.persistence.models import WindowSlotModel
from marketfeed.infrastructure.persistence.window_cache import WindowCache


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(str(tmp_path / "cache" / "klines.db"))


def test_save_then_load(db, key):
    async def scenario():
        cache = WindowCache(db, limit=500)
        candles = make_series(10)

        await cache.save(key, candles)
        loaded = await cache.load(key)

        await cache.close()
        return candles, loaded, cache.stats

    candles, loaded, stats = asyncio.run(scenario())
    assert loaded == candles
    assert stats["saves"] == 1


def test_missing_slot_loads_empty(db, key):
    async def scenario():
        cache = WindowCache(db)
        try:
            return await cache.load(key)
        finally:
            await cache.close()

    assert asyncio.run(scenario()) == []


def test_save_keeps_only_last_limit(db, key):
    async def scenario():
        cache = WindowCache(db, limit=3)
        candles = make_series(5)
        await cache.save(key, candles)
        loaded = await cache.load(key)
        await cache.close()
        return candles, loaded

    candles, loaded = asyncio.run(scenario())
    assert loaded == candles[-3:]


def test_empty_window_is_not_written(db, key):
    async def scenario():
        cache = WindowCache(db)
        await cache.save(key, make_series(2))
        await cache.save(key, [])
        loaded = await cache.load(key)
        await cache.close()
        return loaded

    assert len(asyncio.run(scenario())) == 2


@pytest.mark.parametrize("payload", ["{corrupt", '{"a": 1}', '[[1000, "x", "2", "0.5", "1.5", "10"]]'])
def test_unreadable_payload_loads_empty(db, key, payload):
    async def scenario():
        await db.initialize()
        async with db.session() as session:
            session.add(WindowSlotModel(key=key.cache_key, payload=payload, candle_count=1))
            await session.commit()

        cache = WindowCache(db)
        loaded = await cache.load(key)
        await cache.close()
        return loaded

    assert asyncio.run(scenario()) == []


def test_slots_are_independent_per_key(db, key):
    from marketfeed.domain.value_objects.subscription_key import SubscriptionKey

    other = SubscriptionKey.from_pair("ETH/USDT", "5m")

    async def scenario():
        cache = WindowCache(db)
        await cache.save(key, make_series(2))
        await cache.save(other, make_series(4))
        result = (await cache.load(key), await cache.load(other))
        await cache.close()
        return result

    mine, theirs = asyncio.run(scenario())
    assert len(mine) == 2
    assert len(theirs) == 4


def test_storage_failure_is_reported_not_raised(tmp_path, key):
    # El directorio padre es un archivo: la base de datos no se puede crear
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    publisher = RecordingPublisher()

    async def scenario():
        cache = WindowCache(DatabaseManager(str(blocker / "klines.db")), publisher=publisher)
        loaded = await cache.load(key)
        await cache.save(key, make_series(2))
        return loaded, cache.stats

    loaded, stats = asyncio.run(scenario())
    assert loaded == []
    assert stats["failures"] == 2
    errors = publisher.of(ERROR_TOPIC)
    assert len(errors) == 2
    assert all(e.source == "cache" and e.code == "PERSISTENCE_FAILURE" for e in errors)


def test_null_cache(key):
    async def scenario():
        cache = NullWindowCache()
        await cache.save(key, make_series(3))
        return await cache.load(key)

    assert asyncio.run(scenario()) == []


def test_database_manager_lifecycle(db):
    async def scenario():
        with pytest.raises(RuntimeError):
            async with db.session():
                pass

        await db.initialize()
        await db.initialize()
        async with db.session() as session:
            assert await session.get(WindowSlotModel, "missing") is None
        await db.close()

        with pytest.raises(RuntimeError):
            async with db.session():
                pass

    asyncio.run(scenario())
