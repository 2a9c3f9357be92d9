"""
Last-sync bookkeeping per content domain, shown on the settings/status page.

Provides a SQLAlchemy-backed sink and an in-memory test implementation.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)


class SyncMetadataSink(Protocol):
    """Receives a notification after every successful content load."""

    def record_sync(self, domain: str) -> None:
        ...

    def last_syncs(self) -> Dict[str, datetime]:
        ...

    def last_sync(self, domain: str) -> Optional[datetime]:
        ...


def _to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class InMemorySyncMetadataSink:
    """Simple in-memory sink for development and tests."""

    def __init__(self):
        self.syncs: Dict[str, float] = {}

    def record_sync(self, domain: str) -> None:
        self.syncs[domain] = time.time()
        logger.info("Updated last sync timestamp for %s", domain)

    def last_syncs(self) -> Dict[str, datetime]:
        return {domain: _to_datetime(ts) for domain, ts in self.syncs.items()}

    def last_sync(self, domain: str) -> Optional[datetime]:
        timestamp = self.syncs.get(domain)
        if timestamp is None:
            return None
        return _to_datetime(timestamp)

    def reset(self) -> None:
        """Clear all recorded syncs (useful in tests)."""
        self.syncs.clear()


class SqlSyncMetadataSink:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlSyncMetadataSink")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def record_sync(self, domain: str) -> None:
        now = time.time()
        with self.Session() as session:
            row = session.get(ContentSyncRow, domain)
            if row:
                row.synced_at = now
            else:
                session.add(ContentSyncRow(domain=domain, synced_at=now))
            session.commit()
        logger.info("Updated last sync timestamp for %s", domain)

    def last_syncs(self) -> Dict[str, datetime]:
        with self.Session() as session:
            rows = session.execute(select(ContentSyncRow)).scalars().all()
            return {row.domain: _to_datetime(row.synced_at) for row in rows}

    def last_sync(self, domain: str) -> Optional[datetime]:
        with self.Session() as session:
            row = session.get(ContentSyncRow, domain)
            if not row:
                return None
            return _to_datetime(row.synced_at)


Base = declarative_base()


class ContentSyncRow(Base):
    __tablename__ = "content_syncs"

    domain = Column(String, primary_key=True)
    synced_at = Column(Float, nullable=False)
