"""Getting content into the store: scraped batches and hand-added articles."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from process.dedupe import content_hash, deduplicate, normalize_url
from process.merge import batch_name
from process.settings import CurationSettings, get_settings
from process.similarity import is_similar_title
from storage.db import add_content, create_batch, find_by_link, get_session, load_recent_titles
from storage.models import BATCH_PENDING, ContentItem, MergedBatch, NewContent

log = logging.getLogger(__name__)

ALREADY_EXISTS = "This article already exists in your content"
SIMILAR_EXISTS = "A similar article already exists in your content"


class DuplicateContent(ValueError):
    """The article (or one with a near-identical title) is already stored."""


def _fingerprint(record: NewContent, settings: CurationSettings) -> NewContent:
    record.normalized_url = normalize_url(record.link, settings.tracking_params) or None
    record.content_hash = content_hash(record.title, record.summary)
    return record


def check_duplicate(link: str, title: str, settings: CurationSettings | None = None) -> str | None:
    """Return why *link*/*title* would duplicate stored content, or None."""
    settings = settings or get_settings()
    normalized = normalize_url(link, settings.tracking_params)
    with get_session() as session:
        if find_by_link(session, link, normalized or None):
            return ALREADY_EXISTS
        recent = load_recent_titles(session, settings.recent_title_window)
    if is_similar_title(title, [t.lower() for t in recent], settings.title_similarity_threshold):
        return SIMILAR_EXISTS
    return None


def add_manual_item(
    record: NewContent,
    batch_id: int | None = None,
    settings: CurationSettings | None = None,
) -> ContentItem:
    """Store one hand-added article as pending.

    Raises DuplicateContent if it is already in the store.
    """
    settings = settings or get_settings()
    reason = check_duplicate(record.link, record.title, settings)
    if reason:
        log.info("Rejected manual item %s: %s", record.link, reason)
        raise DuplicateContent(reason)

    _fingerprint(record, settings)
    with get_session() as session:
        item = add_content(
            session,
            title=record.title,
            summary=record.summary,
            link=record.link,
            normalized_url=record.normalized_url,
            content_hash=record.content_hash,
            source_type=record.source_type,
            source_name=record.source_name,
            batch_id=batch_id,
        )
    log.info("Added manual item %d (%s)", item.id, record.link)
    return item


def import_scrape_batch(
    records: Sequence[NewContent],
    name: str | None = None,
    settings: CurationSettings | None = None,
    now: datetime | None = None,
) -> MergedBatch:
    """Store one scrape run as a new pending batch.

    Records are deduplicated among themselves (first wins); matching against
    older batches and reviewed content is left to the merge.
    """
    settings = settings or get_settings()
    fingerprinted = [_fingerprint(r, settings) for r in records]
    unique = deduplicate(fingerprinted)
    name = name or batch_name(now or datetime.now(), prefix="Scrape")

    with get_session() as session:
        batch = create_batch(session, name, BATCH_PENDING, len(unique))
        for r in unique:
            add_content(
                session,
                title=r.title,
                summary=r.summary,
                link=r.link,
                normalized_url=r.normalized_url,
                content_hash=r.content_hash,
                source_type=r.source_type,
                source_name=r.source_name,
                batch_id=batch.id,
            )
    log.info("Imported batch %d (%s) with %d items", batch.id, name, len(unique))
    return batch
