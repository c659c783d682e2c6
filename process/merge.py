"""Batch merge – preview or execute a deduplicated merge of scrape batches."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from process.classify import ReviewLookups, classify
from process.settings import CurationSettings, get_settings
from storage.db import (
    create_batch,
    delete_items,
    get_session,
    load_pending_content,
    load_reviewed_content,
    lock_batches,
    mark_batches_status,
    reassign_items_to_batch,
)
from storage.models import BATCH_MERGED, BATCH_PENDING, MergedBatch, MergeResult

log = logging.getLogger(__name__)

MIN_BATCHES = 2


class InvalidArgument(ValueError):
    """The caller asked for something the merge cannot do."""


class StoreFailure(RuntimeError):
    """A read or write against the content store failed."""


def _validate(batch_ids: Sequence[int] | None) -> list[int]:
    if not batch_ids or len(batch_ids) < MIN_BATCHES:
        raise InvalidArgument("select at least 2 batches")
    return list(batch_ids)


def batch_name(now: datetime, prefix: str = "Merged") -> str:
    """Batch display name, e.g. ``Merged Oct 19, 2026, 03:04 PM``."""
    return f"{prefix} {now:%b} {now.day}, {now:%Y, %I:%M %p}"


def _classify_batches(
    session: Session, batch_ids: list[int], settings: CurationSettings
) -> MergeResult:
    candidates = load_pending_content(session, batch_ids)
    reviewed = load_reviewed_content(session)
    lookups = ReviewLookups.from_reviewed(reviewed)
    log.info(
        "Classifying %d pending items from batches %s against %d reviewed items",
        len(candidates), batch_ids, len(reviewed),
    )

    result = MergeResult(total_items=len(candidates))
    for item in candidates:
        decision = classify(item, lookups, settings.title_similarity_threshold)
        if decision.keep:
            result.items_to_keep.append(item.id)
            continue
        result.items_to_remove.append(item.id)
        setattr(result, decision.counter, getattr(result, decision.counter) + 1)

    log.info(
        "Merge plan: keep %d, remove %d (in-batch dupes=%d, accepted=%d, rejected=%d)",
        result.final_unique_items, result.items_removed,
        result.duplicates_within_batches, result.already_accepted, result.already_rejected,
    )
    return result


def preview_merge(
    batch_ids: Sequence[int], settings: CurationSettings | None = None
) -> MergeResult:
    """Classify the pending content of *batch_ids* without changing anything."""
    ids = _validate(batch_ids)
    settings = settings or get_settings()
    try:
        with get_session() as session:
            return _classify_batches(session, ids, settings)
    except SQLAlchemyError as exc:
        log.exception("Merge preview failed for batches %s", ids)
        raise StoreFailure("Failed to merge batches") from exc


def execute_merge(
    batch_ids: Sequence[int],
    settings: CurationSettings | None = None,
    now: datetime | None = None,
) -> tuple[MergedBatch, MergeResult]:
    """Merge *batch_ids* into a new pending batch.

    Classification and all four writes (create batch, move survivors,
    delete duplicates, mark sources merged) share one transaction; any
    failure rolls the whole merge back.
    """
    ids = _validate(batch_ids)
    settings = settings or get_settings()
    name = batch_name(now or datetime.now(), settings.merged_batch_prefix)
    try:
        with get_session() as session:
            found = lock_batches(session, ids)
            missing = sorted(set(ids) - set(found))
            if missing:
                log.warning("Batches %s do not exist – merging the rest", missing)
            result = _classify_batches(session, ids, settings)
            merged = create_batch(session, name, BATCH_PENDING, result.final_unique_items)
            reassign_items_to_batch(session, result.items_to_keep, merged.id)
            delete_items(session, result.items_to_remove)
            mark_batches_status(session, ids, BATCH_MERGED)
    except SQLAlchemyError as exc:
        log.exception("Merge failed for batches %s – rolled back", ids)
        raise StoreFailure("Failed to merge batches") from exc

    log.info(
        "Merged batches %s into batch %d (%s): %d kept, %d removed",
        ids, merged.id, merged.name, result.final_unique_items, result.items_removed,
    )
    return merged, result
