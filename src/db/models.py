"""SQLAlchemy models for the track registry."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class LiveStream(Base):
    """Tracks published under one live id, as written by the last ingest."""

    __tablename__ = "live_streams"

    live_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    tracks: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
