"""Database helpers – SQLite by default, Postgres via DATABASE_URL.

Every helper below takes the caller's ``Session`` so that a multi-step
operation (a batch merge) runs inside a single ``get_session()`` scope and
commits or rolls back as one unit.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Generator, Iterable, Sequence

from sqlalchemy import create_engine, func
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storage.models import (
    PENDING,
    REVIEWED_STATUSES,
    Base,
    ContentItem,
    ContentRow,
    MergedBatch,
    ScrapeBatchRow,
)

log = logging.getLogger(__name__)

# ── Engine / session factory ─────────────────────────────────────────

_engine = None
_SessionFactory: sessionmaker[Session] | None = None


def _get_database_url() -> str:
    """Return the DB URL.  Postgres swap: set DATABASE_URL env var."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    db_path = os.getenv("SQLITE_PATH", "curation.db")
    return f"sqlite:///{db_path}"


def init_db(url: str | None = None) -> None:
    """Create engine, session factory, and tables (idempotent)."""
    global _engine, _SessionFactory
    url = url or _get_database_url()
    kwargs: dict = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty DB
            kwargs["poolclass"] = StaticPool
    _engine = create_engine(url, **kwargs)
    _SessionFactory = sessionmaker(bind=_engine)
    Base.metadata.create_all(_engine)
    log.info("Database initialised (%s)", url.split("///")[0] + "///…")


def is_initialised() -> bool:
    return _SessionFactory is not None


def dispose_db() -> None:
    """Drop the engine (tests re-initialise a fresh in-memory DB)."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Provide a transactional session scope."""
    if _SessionFactory is None:
        raise RuntimeError("Call init_db() first")
    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ── Reads ────────────────────────────────────────────────────────────


def load_pending_content(session: Session, batch_ids: Sequence[int]) -> list[ContentItem]:
    """Pending items of the given batches, in stable (id) order."""
    rows = (
        session.query(ContentRow)
        .filter(ContentRow.batch_id.in_(list(batch_ids)), ContentRow.status == PENDING)
        .order_by(ContentRow.id)
        .all()
    )
    return [ContentItem.from_row(r) for r in rows]


def load_reviewed_content(session: Session) -> list[ContentItem]:
    """Every accepted or discarded item, store-wide."""
    rows = (
        session.query(ContentRow)
        .filter(ContentRow.status.in_(REVIEWED_STATUSES))
        .order_by(ContentRow.id)
        .all()
    )
    return [ContentItem.from_row(r) for r in rows]


def find_by_link(session: Session, link: str, normalized_url: str | None = None) -> ContentItem | None:
    """First stored item whose link or normalized URL matches."""
    query = session.query(ContentRow)
    if normalized_url:
        query = query.filter(
            (ContentRow.link == link) | (ContentRow.normalized_url == normalized_url)
        )
    else:
        query = query.filter(ContentRow.link == link)
    row = query.order_by(ContentRow.id).first()
    return ContentItem.from_row(row) if row else None


def load_recent_titles(session: Session, limit: int = 100) -> list[str]:
    """Titles of the most recently stored items, newest first."""
    rows = (
        session.query(ContentRow.title)
        .order_by(ContentRow.created_at.desc(), ContentRow.id.desc())
        .limit(limit)
        .all()
    )
    return [r[0] for r in rows]


def list_batches_with_counts(session: Session) -> list[dict]:
    """All batches (newest first) with per-status content counts."""
    batches = (
        session.query(ScrapeBatchRow)
        .order_by(ScrapeBatchRow.created_at.desc(), ScrapeBatchRow.id.desc())
        .all()
    )
    counts = (
        session.query(ContentRow.batch_id, ContentRow.status, func.count(ContentRow.id))
        .filter(ContentRow.batch_id.isnot(None))
        .group_by(ContentRow.batch_id, ContentRow.status)
        .all()
    )
    by_batch: dict[int, dict[str, int]] = {}
    for batch_id, status, count in counts:
        by_batch.setdefault(batch_id, {})[status] = int(count)

    result: list[dict] = []
    for b in batches:
        status_counts = by_batch.get(b.id, {})
        result.append({
            "id": b.id,
            "name": b.name,
            "status": b.status,
            "totalItems": b.total_items,
            "createdAt": b.created_at.isoformat() if b.created_at else None,
            "counts": {
                "pending": status_counts.get("pending", 0),
                "accepted": status_counts.get("accepted", 0),
                "discarded": status_counts.get("discarded", 0),
            },
        })
    return result


def lock_batches(session: Session, batch_ids: Sequence[int]) -> list[int]:
    """Row-lock the given batches for the rest of the transaction.

    Emits ``SELECT … FOR UPDATE`` where the backend supports it (SQLite
    ignores it).  Returns the ids that exist.
    """
    rows = (
        session.query(ScrapeBatchRow.id)
        .filter(ScrapeBatchRow.id.in_(list(batch_ids)))
        .order_by(ScrapeBatchRow.id)
        .with_for_update()
        .all()
    )
    return [r[0] for r in rows]


# ── Writes ───────────────────────────────────────────────────────────


def create_batch(session: Session, name: str, status: str, total_items: int) -> MergedBatch:
    row = ScrapeBatchRow(name=name, status=status, total_items=total_items)
    session.add(row)
    session.flush()  # assigns row.id
    log.debug("Created batch %d (%s)", row.id, name)
    return MergedBatch(id=row.id, name=row.name, total_items=row.total_items)


def reassign_items_to_batch(session: Session, ids: Iterable[int], batch_id: int) -> int:
    ids = list(ids)
    if not ids:
        return 0
    updated = (
        session.query(ContentRow)
        .filter(ContentRow.id.in_(ids))
        .update({ContentRow.batch_id: batch_id}, synchronize_session=False)
    )
    log.debug("Reassigned %d items to batch %d", updated, batch_id)
    return updated


def delete_items(session: Session, ids: Iterable[int]) -> int:
    ids = list(ids)
    if not ids:
        return 0
    deleted = (
        session.query(ContentRow)
        .filter(ContentRow.id.in_(ids))
        .delete(synchronize_session=False)
    )
    log.debug("Deleted %d items", deleted)
    return deleted


def mark_batches_status(session: Session, ids: Iterable[int], status: str) -> int:
    ids = list(ids)
    if not ids:
        return 0
    return (
        session.query(ScrapeBatchRow)
        .filter(ScrapeBatchRow.id.in_(ids))
        .update({ScrapeBatchRow.status: status}, synchronize_session=False)
    )


def add_content(
    session: Session,
    *,
    title: str,
    summary: str = "",
    link: str | None = None,
    normalized_url: str | None = None,
    content_hash: str | None = None,
    source_type: str = "article",
    source_name: str | None = None,
    status: str = PENDING,
    batch_id: int | None = None,
) -> ContentItem:
    """Insert one content row and return it as a ``ContentItem``."""
    row = ContentRow(
        title=title,
        summary=summary,
        link=link,
        normalized_url=normalized_url,
        content_hash=content_hash,
        source_type=source_type,
        source_name=source_name,
        status=status,
        batch_id=batch_id,
    )
    session.add(row)
    session.flush()
    return ContentItem.from_row(row)
