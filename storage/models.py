"""SQLAlchemy models and shared data classes for the curation store."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase

# Content statuses the merge engine reads or writes
PENDING = "pending"
ACCEPTED = "accepted"
DISCARDED = "discarded"
SAVED_FOR_NEXT = "saved-for-next"
REVIEWED_STATUSES = (ACCEPTED, DISCARDED)

# Batch statuses
BATCH_PENDING = "pending"
BATCH_MERGED = "merged"


# ── ORM base ────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


class ScrapeBatchRow(Base):
    """One scrape run (or the result of merging several)."""

    __tablename__ = "scrape_batches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, default=BATCH_PENDING)  # "pending" | "reviewed" | "merged"
    total_items = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=dt.datetime.utcnow)

    def __repr__(self) -> str:
        return f"<ScrapeBatchRow id={self.id} status={self.status}>"


class ContentRow(Base):
    """Persisted content item.

    ``link`` is indexed but not unique: overlapping batches carry the same
    article and the merge is what resolves that.
    """

    __tablename__ = "content"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    summary = Column(Text, nullable=False, default="")
    link = Column(String(2048), nullable=True, index=True)
    normalized_url = Column(String(2048), nullable=True, index=True)
    content_hash = Column(String(64), nullable=True, index=True)
    source_type = Column(String(32), nullable=False, default="article")
    source_name = Column(String(256), nullable=True)
    status = Column(String(32), nullable=False, default=PENDING, index=True)
    batch_id = Column(Integer, ForeignKey("scrape_batches.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=dt.datetime.utcnow)

    def __repr__(self) -> str:
        return f"<ContentRow id={self.id} title={self.title!r:.40}>"


# ── Plain data classes used by the merge engine ─────────────────────
@dataclass
class ContentItem:
    id: int
    title: str
    link: Optional[str] = None
    normalized_url: Optional[str] = None
    content_hash: Optional[str] = None
    status: str = PENDING
    batch_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: ContentRow) -> "ContentItem":
        return cls(
            id=row.id,
            title=row.title,
            link=row.link,
            normalized_url=row.normalized_url,
            content_hash=row.content_hash,
            status=row.status,
            batch_id=row.batch_id,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "link": self.link,
            "normalizedUrl": self.normalized_url,
            "contentHash": self.content_hash,
            "status": self.status,
            "batchId": self.batch_id,
        }


@dataclass
class NewContent:
    """A scraped or hand-entered record before it is stored."""

    title: str
    link: str
    summary: str = ""
    source_type: str = "article"
    source_name: Optional[str] = None

    # Filled in by intake
    normalized_url: Optional[str] = None
    content_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "NewContent":
        return cls(
            title=data["title"],
            link=data["link"],
            summary=data.get("summary") or "",
            source_type=data.get("sourceType") or data.get("source_type") or "article",
            source_name=data.get("sourceName") or data.get("source_name"),
        )


@dataclass
class MergedBatch:
    id: int
    name: str
    total_items: int

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "totalItems": self.total_items}


@dataclass
class MergeResult:
    """Outcome of classifying one merge selection.

    ``items_to_keep`` and ``items_to_remove`` partition the candidate ids.
    """

    total_items: int = 0
    duplicates_within_batches: int = 0
    already_accepted: int = 0
    already_rejected: int = 0
    items_to_keep: list[int] = field(default_factory=list)
    items_to_remove: list[int] = field(default_factory=list)

    @property
    def final_unique_items(self) -> int:
        return len(self.items_to_keep)

    @property
    def items_removed(self) -> int:
        return len(self.items_to_remove)

    def to_stats(self, include_removed: bool = False) -> dict:
        stats = {
            "totalItems": self.total_items,
            "duplicatesWithinBatches": self.duplicates_within_batches,
            "alreadyAccepted": self.already_accepted,
            "alreadyRejected": self.already_rejected,
            "finalUniqueItems": self.final_unique_items,
        }
        if include_removed:
            stats["itemsRemoved"] = self.items_removed
        return stats
