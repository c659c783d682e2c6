import pytest

from storage.db import dispose_db, get_session, init_db
from storage.models import ContentRow, ScrapeBatchRow


@pytest.fixture
def store():
    """Fresh in-memory database for each test."""
    init_db("sqlite://")
    yield
    dispose_db()


@pytest.fixture
def make_batch(store):
    def _make(name="Scrape", status="pending", total_items=0):
        with get_session() as session:
            row = ScrapeBatchRow(name=name, status=status, total_items=total_items)
            session.add(row)
            session.flush()
            return row.id

    return _make


@pytest.fixture
def make_item(store):
    def _make(title, batch_id=None, link=None, content_hash=None, status="pending", summary=""):
        with get_session() as session:
            row = ContentRow(
                title=title,
                summary=summary,
                link=link,
                content_hash=content_hash,
                status=status,
                batch_id=batch_id,
            )
            session.add(row)
            session.flush()
            return row.id

    return _make


@pytest.fixture
def scenario(make_batch, make_item):
    """Two pending batches with one cross-batch duplicate and one item
    whose hash matches a discarded article in a third batch."""
    b1 = make_batch("Scrape Oct 1")
    b2 = make_batch("Scrape Oct 2")
    b3 = make_batch("Scrape Sep 20", status="reviewed")

    ids = {
        "A": make_item("Rust 2.0 released", b1, link="https://ex.com/a"),
        "B": make_item("Why SQLite is everywhere", b1, link="https://ex.com/b", content_hash="h-old"),
        "D": make_item("A field guide to Postgres indexes", b1, link="https://ex.com/d"),
        "A2": make_item("Rust 2.0 is out", b2, link="https://ex.com/a"),
        "C": make_item("Inside the new Python JIT", b2, link="https://ex.com/c"),
        "E": make_item("Designing data pipelines with DuckDB", b2, link="https://ex.com/e"),
        "R": make_item(
            "Kubernetes operators in practice", b3,
            link="https://other.com/r", content_hash="h-old", status="discarded",
        ),
    }
    return {"batches": (b1, b2, b3), "ids": ids}
