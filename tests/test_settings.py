"""Tests for loading curation settings from YAML."""

import pytest

from process.dedupe import TRACKING_PARAMS
from process.settings import CurationSettings, load_settings


def test_missing_file_gives_defaults(tmp_path):
    assert load_settings(tmp_path / "absent.yaml") == CurationSettings()


def test_values_override_defaults(tmp_path):
    path = tmp_path / "curation.yaml"
    path.write_text(
        "title_similarity_threshold: 0.9\nmerged_batch_prefix: Combined\ntracking_params: [ref]\n",
        encoding="utf-8",
    )
    settings = load_settings(path)
    assert settings.title_similarity_threshold == 0.9
    assert settings.merged_batch_prefix == "Combined"
    assert settings.tracking_params == ("ref",)
    assert settings.recent_title_window == 100


def test_empty_tracking_list_disables_stripping(tmp_path):
    path = tmp_path / "curation.yaml"
    path.write_text("tracking_params: []\n", encoding="utf-8")
    assert load_settings(path).tracking_params == ()


def test_absent_tracking_key_keeps_defaults(tmp_path):
    path = tmp_path / "curation.yaml"
    path.write_text("merged_batch_prefix: Merged\n", encoding="utf-8")
    assert load_settings(path).tracking_params == TRACKING_PARAMS


def test_threshold_out_of_range(tmp_path):
    path = tmp_path / "curation.yaml"
    path.write_text("title_similarity_threshold: 1.5\n", encoding="utf-8")
    with pytest.raises(ValueError, match="title_similarity_threshold"):
        load_settings(path)
