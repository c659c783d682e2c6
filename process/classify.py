"""Duplicate classification of merge candidates.

Each pending candidate is checked against content that a human already
reviewed (store-wide) and against candidates kept earlier in the same
pass.  Rules are applied in a fixed order and the first match decides
both the outcome and which counter it lands in:

  1. link matches a reviewed item       → already reviewed (accepted/rejected by stored status)
  2. content hash matches a reviewed item → already reviewed (always counted rejected)
  3. link matches an earlier kept candidate → duplicate in batches
  4. hash matches an earlier kept candidate → duplicate in batches
  5. title similar to a reviewed title  → similar title (counted rejected)
  6. otherwise keep
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from process.similarity import TITLE_SIMILARITY_THRESHOLD, is_similar_title
from storage.models import ACCEPTED, ContentItem

log = logging.getLogger(__name__)

# ── Reasons ──────────────────────────────────────────────────────────
ALREADY_REVIEWED = "already_reviewed"
DUPLICATE_IN_BATCHES = "duplicate_in_batches"
SIMILAR_TITLE_REVIEWED = "similar_title_reviewed"

# ── Counters a removal is booked against ─────────────────────────────
ALREADY_ACCEPTED = "already_accepted"
ALREADY_REJECTED = "already_rejected"
DUPLICATES_WITHIN_BATCHES = "duplicates_within_batches"


@dataclass(frozen=True)
class Decision:
    keep: bool
    reason: Optional[str] = None
    counter: Optional[str] = None


KEEP = Decision(keep=True)


@dataclass
class ReviewLookups:
    """Lookup sets for one merge pass.  Build a fresh one per call."""

    accepted_urls: set[str] = field(default_factory=set)
    accepted_hashes: set[str] = field(default_factory=set)
    reviewed_titles_lower: list[str] = field(default_factory=list)
    status_by_link: dict[str, str] = field(default_factory=dict)
    seen_urls: set[str] = field(default_factory=set)
    seen_hashes: set[str] = field(default_factory=set)

    @classmethod
    def from_reviewed(cls, reviewed: Sequence[ContentItem]) -> "ReviewLookups":
        lookups = cls()
        for item in reviewed:
            if item.link:
                lookups.accepted_urls.add(item.link)
                # an accepted copy outranks a discarded one
                if lookups.status_by_link.get(item.link) != ACCEPTED:
                    lookups.status_by_link[item.link] = item.status
            if item.content_hash:
                lookups.accepted_hashes.add(item.content_hash)
            lookups.reviewed_titles_lower.append((item.title or "").lower())
        return lookups


def classify(
    candidate: ContentItem,
    lookups: ReviewLookups,
    threshold: float = TITLE_SIMILARITY_THRESHOLD,
) -> Decision:
    """Decide keep/remove for one candidate and record it if kept."""
    decision = _decide(candidate, lookups, threshold)
    if decision.keep:
        if candidate.link:
            lookups.seen_urls.add(candidate.link)
        if candidate.content_hash:
            lookups.seen_hashes.add(candidate.content_hash)
    else:
        log.debug("Remove %d (%s): %s", candidate.id, decision.reason, candidate.title)
    return decision


def _decide(candidate: ContentItem, lookups: ReviewLookups, threshold: float) -> Decision:
    link = candidate.link
    chash = candidate.content_hash

    if link and link in lookups.accepted_urls:
        counter = ALREADY_ACCEPTED if lookups.status_by_link.get(link) == ACCEPTED else ALREADY_REJECTED
        return Decision(False, ALREADY_REVIEWED, counter)
    if chash and chash in lookups.accepted_hashes:
        # hash matches are not split by stored status
        return Decision(False, ALREADY_REVIEWED, ALREADY_REJECTED)
    if link and link in lookups.seen_urls:
        return Decision(False, DUPLICATE_IN_BATCHES, DUPLICATES_WITHIN_BATCHES)
    if chash and chash in lookups.seen_hashes:
        return Decision(False, DUPLICATE_IN_BATCHES, DUPLICATES_WITHIN_BATCHES)
    if is_similar_title(candidate.title, lookups.reviewed_titles_lower, threshold):
        return Decision(False, SIMILAR_TITLE_REVIEWED, ALREADY_REJECTED)
    return KEEP
