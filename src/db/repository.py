"""Repository persisting track locators per live id."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite

from db.base import AsyncSessionFactory
from db.models import LiveStream
from sfu.schemas import TrackLocator

LOGGER = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _upsert_statement(dialect_name: str, live_id: str, tracks: list[dict[str, Any]]):
    """Single-statement insert-or-replace, atomic on the database side."""

    try:
        insert = _UPSERT_INSERTS[dialect_name]
    except KeyError:
        raise RuntimeError(f"Track registry does not support the {dialect_name!r} dialect.") from None

    stmt = insert(LiveStream).values(
        live_id=live_id,
        tracks=tracks,
        updated_at=datetime.now(timezone.utc),
    )
    return stmt.on_conflict_do_update(
        index_elements=[LiveStream.live_id],
        set_={"tracks": stmt.excluded.tracks, "updated_at": stmt.excluded.updated_at},
    )


class TrackRegistry:
    """Async key-value view over the live_streams table.

    Writes are last-writer-wins: concurrent puts for the same live id never
    fail, and whichever commits last is what readers see. There is no locking
    between a reader and a concurrent writer.
    """

    def __init__(self, session_factory=AsyncSessionFactory) -> None:
        self._session_factory = session_factory

    async def put(self, live_id: str, locators: Sequence[TrackLocator]) -> None:
        tracks = [locator.model_dump(by_alias=True) for locator in locators]
        async with self._session_factory() as session:
            dialect_name = session.get_bind().dialect.name
            await session.execute(_upsert_statement(dialect_name, live_id, tracks))
            await session.commit()
        LOGGER.info("Registered %d track(s) for live %s", len(tracks), live_id)

    async def get(self, live_id: str) -> list[TrackLocator]:
        async with self._session_factory() as session:
            stream = await session.get(LiveStream, live_id)
            if stream is None:
                return []
            return [TrackLocator.model_validate(track) for track in stream.tracks]

    async def delete(self, live_id: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(LiveStream).where(LiveStream.live_id == live_id))
            await session.commit()
        LOGGER.info("Cleared tracks for live %s", live_id)
