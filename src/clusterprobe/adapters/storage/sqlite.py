"""SQLite storage adapter keeping the latest sample of every series."""

import asyncio
import json
import math
from collections.abc import AsyncIterable
from types import TracebackType

import aiosqlite

from clusterprobe.core.models import MetricSample

# SQLite turns NaN into NULL, so value is nullable and NULL reads back as NaN.
_SCHEMA = """
CREATE TABLE IF NOT EXISTS series (
    name TEXT NOT NULL,
    labels TEXT NOT NULL,
    updated REAL NOT NULL,
    value REAL,
    PRIMARY KEY (name, labels)
) WITHOUT ROWID;
CREATE INDEX IF NOT EXISTS idx_series_updated ON series(updated);
"""

_UPSERT_SERIES = """
INSERT INTO series (name, labels, updated, value) VALUES (?, ?, ?, ?)
ON CONFLICT (name, labels) DO UPDATE SET
    updated = excluded.updated,
    value = excluded.value
"""

_SELECT_UPDATED_AFTER = """
SELECT name, labels, updated, value FROM series
WHERE updated > ?
ORDER BY updated, name
"""


def _labels_key(labels: dict[str, str]) -> str:
    """Serialize labels deterministically so equal label sets share a row."""
    return json.dumps(labels, sort_keys=True, separators=(",", ":"))


def _row_to_sample(row: aiosqlite.Row) -> MetricSample:
    name, labels, updated, value = row
    try:
        parsed = json.loads(labels)
    except json.JSONDecodeError:
        parsed = {}
    return MetricSample(
        name=name,
        timestamp=updated,
        value=math.nan if value is None else value,
        labels=parsed,
    )


class SQLiteMetricsStorage:
    """SQLite implementation of MetricsStoragePort.

    One aiosqlite connection is opened on first use and shared by every
    caller; aiosqlite runs its statements on a single worker thread, so
    concurrent pollers are serialized there. File databases use WAL mode so
    scrapes from another process do not block writers. ``:memory:`` works
    the same way and lives until ``close()``.

    Usable as an async context manager, which closes the connection on exit.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._open_lock: asyncio.Lock | None = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db
        # created lazily so the lock binds to the running loop
        if self._open_lock is None:
            self._open_lock = asyncio.Lock()
        async with self._open_lock:
            if self._db is None:
                db = await aiosqlite.connect(self.db_path)
                if self.db_path != ":memory:":
                    await db.execute("PRAGMA journal_mode=WAL")
                await db.executescript(_SCHEMA)
                self._db = db
        return self._db

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample, replacing the previous value of its series."""
        db = await self._conn()
        await db.execute(
            _UPSERT_SERIES,
            (
                sample.name,
                _labels_key(sample.labels),
                sample.timestamp,
                None if math.isnan(sample.value) else sample.value,
            ),
        )
        await db.commit()

    async def read(self, since: float = 0) -> AsyncIterable[MetricSample]:
        """Yield series updated after ``since``, oldest update first."""
        db = await self._conn()
        async with db.execute(_SELECT_UPDATED_AFTER, (since,)) as cursor:
            rows = await cursor.fetchall()
        for row in rows:
            yield _row_to_sample(row)

    async def scrape(self) -> AsyncIterable[MetricSample]:
        """Yield every stored series."""
        async for sample in self.read(since=-math.inf):
            yield sample

    async def count(self) -> int:
        """Return the number of stored series."""
        db = await self._conn()
        async with db.execute("SELECT COUNT(*) FROM series") as cursor:
            (total,) = await cursor.fetchone()
        return total

    async def clear(self) -> None:
        """Drop every stored series."""
        db = await self._conn()
        await db.execute("DELETE FROM series")
        await db.commit()

    async def close(self) -> None:
        """Close the connection. A later call reopens it."""
        db, self._db = self._db, None
        if db is not None:
            await db.close()

    async def __aenter__(self) -> "SQLiteMetricsStorage":
        await self._conn()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
