import asyncio
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from gold_monitor.storage.history import HistoryStore, HistoryStoreError, SampleHistory
from gold_monitor.types import Sample

_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'history.db'}"


def test_load_prunes_samples_older_than_retention(tmp_path: Path) -> None:
    async def _run() -> tuple[list[Sample], list[Sample]]:
        store = HistoryStore(database_url=_url(tmp_path))
        try:
            await store.open()
            await store.append(Sample(timestamp=_NOW - timedelta(days=400), price=800.0))
            await store.append(Sample(timestamp=_NOW - timedelta(days=366), price=810.0))
            await store.append(Sample(timestamp=_NOW - timedelta(minutes=5), price=951.0))
            await store.append(Sample(timestamp=_NOW - timedelta(days=30), price=900.0))
            loaded = await store.load(retention=timedelta(days=365), now=_NOW)
            remaining = await store.query_recent(since=_NOW - timedelta(days=5000))
            return loaded, remaining
        finally:
            await store.aclose()

    loaded, remaining = asyncio.run(_run())

    assert [s.price for s in loaded] == [900.0, 951.0]
    assert all(s.timestamp >= _NOW - timedelta(days=365) for s in loaded)
    assert loaded[0].timestamp.tzinfo is not None
    # Old rows are deleted, not just filtered.
    assert [s.price for s in remaining] == [900.0, 951.0]


def test_load_empty_store_returns_empty(tmp_path: Path) -> None:
    async def _run() -> list[Sample]:
        store = HistoryStore(database_url=_url(tmp_path))
        try:
            await store.open()
            return await store.load(retention=timedelta(days=365), now=_NOW)
        finally:
            await store.aclose()

    assert asyncio.run(_run()) == []


def test_open_fails_when_storage_cannot_be_created(tmp_path: Path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'history.db'}"

    async def _run() -> None:
        store = HistoryStore(database_url=url)
        try:
            await store.open()
        finally:
            await store.aclose()

    with pytest.raises(HistoryStoreError):
        asyncio.run(_run())


def test_concurrent_appends_are_serialized(tmp_path: Path) -> None:
    async def _run() -> list[Sample]:
        store = HistoryStore(database_url=_url(tmp_path))
        try:
            await store.open()
            await asyncio.gather(
                *(
                    store.append(Sample(timestamp=_NOW + timedelta(seconds=i), price=900.0 + i))
                    for i in range(20)
                )
            )
            return await store.query_recent(since=_NOW)
        finally:
            await store.aclose()

    samples = asyncio.run(_run())
    assert len(samples) == 20
    assert [s.price for s in samples] == sorted(s.price for s in samples)


def test_memory_mirror_drops_samples_past_its_retention() -> None:
    history = SampleHistory(
        retention=timedelta(days=7),
        samples=[
            Sample(timestamp=_NOW - timedelta(days=10), price=1.0),
            Sample(timestamp=_NOW - timedelta(days=3), price=2.0),
        ],
    )
    assert [s.price for s in history] == [1.0, 2.0]

    history.append(Sample(timestamp=_NOW, price=3.0))

    assert [s.price for s in history] == [2.0, 3.0]
    assert len(history) == 2


def test_append_then_load_round_trips_aware_utc(tmp_path: Path) -> None:
    stamp = datetime.now(UTC).replace(microsecond=0)
    shanghai = timezone(timedelta(hours=8))

    async def _run() -> list[Sample]:
        store = HistoryStore(database_url=_url(tmp_path))
        try:
            await store.open()
            await store.append(Sample(timestamp=stamp, price=950.0))
            later = (stamp + timedelta(seconds=1)).astimezone(shanghai)
            await store.append(Sample(timestamp=later, price=951.0))
            return await store.load(retention=timedelta(days=365))
        finally:
            await store.aclose()

    loaded = asyncio.run(_run())

    assert [s.price for s in loaded] == [950.0, 951.0]
    assert loaded[0].timestamp == stamp
    assert loaded[1].timestamp == stamp + timedelta(seconds=1)
    assert all(s.timestamp.utcoffset() == timedelta(0) for s in loaded)


def test_load_wraps_driver_errors(tmp_path: Path) -> None:
    async def _run() -> None:
        # No open(): the table does not exist.
        store = HistoryStore(database_url=_url(tmp_path))
        try:
            await store.load(retention=timedelta(days=365), now=_NOW)
        finally:
            await store.aclose()

    with pytest.raises(HistoryStoreError):
        asyncio.run(_run())
