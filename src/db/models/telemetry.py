"""
Telemetry models.

Stores reader telemetry events for QA and anti-gaming analysis. Rows are
keyed by session and article; the payload holds the event fields.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TelemetryEventRecord(Base):
    """One recorded gate telemetry event."""

    __tablename__ = "gate_telemetry_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    article_id: Mapped[str] = mapped_column(String(512), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_gate_telemetry_session_article", "session_id", "article_id"),
    )

    def __repr__(self) -> str:
        return f"<TelemetryEventRecord {self.id} {self.event_type} {self.article_id}>"
