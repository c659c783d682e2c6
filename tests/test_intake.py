"""Tests for manual content intake and scrape batch import."""

from datetime import datetime

import pytest

from process.dedupe import content_hash
from process.intake import (
    ALREADY_EXISTS,
    SIMILAR_EXISTS,
    DuplicateContent,
    add_manual_item,
    check_duplicate,
    import_scrape_batch,
)
from storage.db import get_session, load_pending_content
from storage.models import NewContent


def test_add_manual_item_fills_fingerprints(store):
    item = add_manual_item(
        NewContent(
            title="Postgres 18 is out",
            link="https://Blog.example.com/pg18/?utm_source=newsletter",
            summary="What changed.",
        )
    )
    assert item.status == "pending"
    assert item.normalized_url == "https://blog.example.com/pg18"
    assert item.content_hash == content_hash("Postgres 18 is out", "What changed.")


def test_same_article_with_tracking_params_is_duplicate(store):
    add_manual_item(NewContent(title="Postgres 18 is out", link="https://example.com/pg18"))
    assert check_duplicate("https://example.com/pg18/?utm_campaign=x", "Different title") == ALREADY_EXISTS
    with pytest.raises(DuplicateContent, match=ALREADY_EXISTS):
        add_manual_item(NewContent(title="Other", link="https://example.com/pg18"))


def test_similar_title_is_duplicate(store):
    add_manual_item(NewContent(title="Understanding Distributed System", link="https://a.com/1"))
    assert check_duplicate("https://b.com/2", "Understanding Distributed Systems") == SIMILAR_EXISTS
    assert check_duplicate("https://b.com/3", "Intro to Kubernetes") is None


def test_import_scrape_batch_dedupes_records(store):
    records = [
        NewContent(title="One", link="https://a.com/1", summary="first"),
        NewContent(title="One (mirror)", link="https://a.com/1", summary="mirror"),
        NewContent(title="one", link="https://b.com/1", summary="FIRST"),
        NewContent(title="Two", link="https://a.com/2", summary="second"),
    ]
    batch = import_scrape_batch(records, name="Scrape Oct 19")

    assert batch.name == "Scrape Oct 19"
    assert batch.total_items == 2
    with get_session() as session:
        stored = load_pending_content(session, [batch.id])
    assert [i.link for i in stored] == ["https://a.com/1", "https://a.com/2"]
    assert all(i.content_hash for i in stored)


def test_new_content_from_dict_accepts_camel_case():
    record = NewContent.from_dict(
        {"title": "T", "link": "https://a.com", "sourceType": "youtube", "sourceName": "Chan"}
    )
    assert record.source_type == "youtube"
    assert record.source_name == "Chan"
    assert record.summary == ""


def test_import_default_name_matches_merged_format(store):
    batch = import_scrape_batch(
        [NewContent(title="One", link="https://a.com/1")],
        now=datetime(2026, 10, 19, 15, 4),
    )
    assert batch.name == "Scrape Oct 19, 2026, 03:04 PM"
