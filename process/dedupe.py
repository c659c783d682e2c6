"""URL normalisation, content fingerprints and in-memory deduplication."""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Iterable, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from storage.models import NewContent

log = logging.getLogger(__name__)

TRACKING_PARAMS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "source",
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
)

_WS_RE = re.compile(r"\s+")


def normalize_url(url: str | None, tracking_params: Iterable[str] = TRACKING_PARAMS) -> str:
    """Canonical form of *url* for loose matching.

    Drops tracking query parameters, the fragment and a trailing slash, then
    lowercases the whole thing.
    """
    if not url:
        return ""
    url = url.strip()
    drop = set(tracking_params)
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url!r}")
        query = urlencode(
            [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in drop]
        )
        normalized = urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))
    except ValueError:
        normalized = url.split("?")[0].split("#")[0]
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized.lower()


def content_hash(title: str, summary: str) -> str:
    """MD5 of ``title|summary`` after lowercasing and collapsing whitespace."""
    blob = _WS_RE.sub(" ", f"{title or ''}|{summary or ''}".lower()).strip()
    return hashlib.md5(blob.encode("utf-8")).hexdigest()


def deduplicate(items: Sequence[NewContent]) -> list[NewContent]:
    """Remove duplicates by link and by content hash.  First occurrence wins."""
    seen_urls: set[str] = set()
    seen_hashes: set[str] = set()
    unique: list[NewContent] = []

    for item in items:
        if item.link and item.link in seen_urls:
            log.debug("Dedup (URL): %s", item.title)
            continue
        if item.content_hash and item.content_hash in seen_hashes:
            log.debug("Dedup (hash): %s", item.title)
            continue
        if item.link:
            seen_urls.add(item.link)
        if item.content_hash:
            seen_hashes.add(item.content_hash)
        unique.append(item)

    dropped = len(items) - len(unique)
    if dropped:
        log.info("Deduplication removed %d items (%d → %d)", dropped, len(items), len(unique))
    return unique
