from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, col, select

from gold_monitor.storage.models import PriceSample
from gold_monitor.types import Sample

logger = logging.getLogger("gold_monitor.history")


class HistoryStoreError(RuntimeError):
    pass


def _to_db(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def _from_db(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


class HistoryStore:
    """Durable append-only log of price samples.

    Every statement runs under one private lock so that the detached
    append tasks never interleave with a prune or a range query.
    Driver failures surface as HistoryStoreError.
    """

    def __init__(self, *, database_url: str, echo: bool = False) -> None:
        self._engine: AsyncEngine = create_async_engine(database_url, echo=echo, future=True)
        self._sessions = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        try:
            async with self._lock:
                async with self._engine.begin() as conn:
                    await conn.run_sync(SQLModel.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise HistoryStoreError(f"cannot open history store: {e}") from e

    async def aclose(self) -> None:
        await self._engine.dispose()

    async def load(self, *, retention: timedelta, now: datetime | None = None) -> list[Sample]:
        now = now if now is not None else datetime.now(UTC)
        horizon = now - retention
        removed = await self.prune(before=horizon)
        if removed:
            logger.info("history_pruned", extra={"rows": removed})
        return await self.query_recent(since=horizon)

    async def prune(self, *, before: datetime) -> int:
        try:
            async with self._lock:
                async with self._sessions() as session:
                    result = await session.execute(
                        delete(PriceSample).where(col(PriceSample.timestamp) < _to_db(before))
                    )
                    await session.commit()
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"cannot prune history: {e}") from e
        return int(result.rowcount or 0)

    async def query_recent(self, *, since: datetime) -> list[Sample]:
        try:
            async with self._lock:
                async with self._sessions() as session:
                    result = await session.execute(
                        select(PriceSample)
                        .where(col(PriceSample.timestamp) >= _to_db(since))
                        .order_by(col(PriceSample.timestamp))
                    )
                    rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"cannot read history: {e}") from e
        return [Sample(timestamp=_from_db(r.timestamp), price=float(r.price)) for r in rows]

    async def append(self, sample: Sample) -> None:
        try:
            async with self._lock:
                async with self._sessions() as session:
                    session.add(PriceSample(timestamp=_to_db(sample.timestamp), price=sample.price))
                    await session.commit()
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"cannot append sample: {e}") from e


class SampleHistory:
    """In-memory mirror of recent samples used for windowed stats.

    Only the monitor task touches it. Samples older than `retention`
    relative to the newest sample are dropped on every append.
    """

    def __init__(self, *, retention: timedelta, samples: Iterable[Sample] = ()) -> None:
        self._retention = retention
        self._samples: deque[Sample] = deque()
        for s in samples:
            self.append(s)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)
        horizon = sample.timestamp - self._retention
        while self._samples and self._samples[0].timestamp < horizon:
            self._samples.popleft()
