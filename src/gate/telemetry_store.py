"""
Durable telemetry sink backed by SQLAlchemy.

Keeps the same contract as the in-memory log: most recent `cap` records,
oldest evicted first. Append and trim run in one transaction.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime

from sqlalchemy import Engine, delete, func, select

from src.db.database import get_engine, get_session_factory, init_db, session_scope
from src.db.models import TelemetryEventRecord

from .telemetry import DEFAULT_TELEMETRY_CAP, TelemetryRecord, event_from_dict


class SqlTelemetryStore:
    """Telemetry sink persisted to a relational database (SQLite by default)."""

    def __init__(self, engine: Engine | None = None, cap: int = DEFAULT_TELEMETRY_CAP):
        """
        Initialize the store and create its table if missing.

        Args:
            engine: Database engine (default telemetry engine if None)
            cap: Number of most recent records kept
        """
        if cap <= 0:
            raise ValueError("cap must be positive")
        self.engine = engine or get_engine()
        self.cap = cap
        self._factory = get_session_factory(self.engine)
        init_db(self.engine)

    def record(self, record: TelemetryRecord) -> None:
        with session_scope(self._factory) as session:
            session.add(
                TelemetryEventRecord(
                    session_id=record.session_id,
                    article_id=record.article_id,
                    event_type=record.type,
                    payload=asdict(record.event),
                    recorded_at=record.recorded_at.astimezone(UTC),
                )
            )
            session.flush()

            count = session.scalar(select(func.count()).select_from(TelemetryEventRecord))
            overflow = (count or 0) - self.cap
            if overflow > 0:
                oldest = select(TelemetryEventRecord.id).order_by(TelemetryEventRecord.id).limit(overflow)
                session.execute(
                    delete(TelemetryEventRecord)
                    .where(TelemetryEventRecord.id.in_(oldest))
                    .execution_options(synchronize_session=False)
                )

    def list(self, article_id: str | None = None, session_id: str | None = None) -> list[TelemetryRecord]:
        """Stored records, most recent last, optionally filtered by article or session."""
        query = select(TelemetryEventRecord).order_by(TelemetryEventRecord.id)
        if article_id is not None:
            query = query.where(TelemetryEventRecord.article_id == article_id)
        if session_id is not None:
            query = query.where(TelemetryEventRecord.session_id == session_id)

        with session_scope(self._factory) as session:
            rows = session.scalars(query).all()
            return [
                TelemetryRecord(
                    event=event_from_dict(row.event_type, row.payload),
                    recorded_at=_as_utc(row.recorded_at),
                    session_id=row.session_id,
                )
                for row in rows
            ]

    def clear(self) -> None:
        with session_scope(self._factory) as session:
            session.execute(delete(TelemetryEventRecord))


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; record() writes UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
