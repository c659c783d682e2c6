"""Tests for URL normalisation, content hashes and in-batch dedup."""

import hashlib

from process.dedupe import content_hash, deduplicate, normalize_url
from storage.models import NewContent


class TestNormalizeUrl:
    def test_strips_tracking_params_and_fragment(self):
        url = "https://Example.com/Post/?utm_source=x&id=3&fbclid=abc#comments"
        assert normalize_url(url) == "https://example.com/post/?id=3"

    def test_strips_trailing_slash(self):
        assert normalize_url("https://example.com/a/") == "https://example.com/a"

    def test_only_tracking_params(self):
        assert normalize_url("https://example.com/a/?utm_medium=email&ref=hn") == "https://example.com/a"

    def test_custom_tracking_params(self):
        assert normalize_url("https://example.com/a?x=1&y=2", tracking_params=["x"]) == "https://example.com/a?y=2"

    def test_not_a_url_falls_back_to_text_cleanup(self):
        assert normalize_url("Some/Path/?q=1#frag") == "some/path"

    def test_empty(self):
        assert normalize_url("") == ""
        assert normalize_url(None) == ""


class TestContentHash:
    def test_case_and_whitespace_insensitive(self):
        assert content_hash("Hello   World", "A  summary") == content_hash("hello world", "a summary")

    def test_md5_of_joined_fields(self):
        expected = hashlib.md5("hello world|sum".encode("utf-8")).hexdigest()
        assert content_hash(" Hello World", "Sum ") == expected

    def test_summary_matters(self):
        assert content_hash("t", "one") != content_hash("t", "two")


class TestDeduplicate:
    def test_first_occurrence_wins(self):
        items = [
            NewContent(title="One", link="https://a.com/1", content_hash="h1"),
            NewContent(title="One again", link="https://a.com/1", content_hash="h9"),
            NewContent(title="Same body", link="https://a.com/2", content_hash="h1"),
            NewContent(title="Two", link="https://a.com/3", content_hash="h3"),
        ]
        unique = deduplicate(items)
        assert [i.title for i in unique] == ["One", "Two"]

    def test_missing_fields_never_collide(self):
        items = [NewContent(title="x", link=""), NewContent(title="y", link="")]
        assert len(deduplicate(items)) == 2
