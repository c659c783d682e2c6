"""Curation tunables – read from config/curation.yaml, with built-in defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from process.dedupe import TRACKING_PARAMS
from process.similarity import TITLE_SIMILARITY_THRESHOLD

log = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "curation.yaml"


@dataclass(frozen=True)
class CurationSettings:
    title_similarity_threshold: float = TITLE_SIMILARITY_THRESHOLD
    merged_batch_prefix: str = "Merged"
    recent_title_window: int = 100
    tracking_params: tuple[str, ...] = field(default=TRACKING_PARAMS)


def load_settings(path: str | Path | None = None) -> CurationSettings:
    """Load settings from YAML.  A missing file means defaults."""
    path = Path(path or os.getenv("CURATION_CONFIG") or DEFAULT_CONFIG_PATH)
    if not path.exists():
        log.debug("No curation config at %s – using defaults", path)
        return CurationSettings()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    defaults = CurationSettings()
    tracking = data.get("tracking_params")
    threshold = float(data.get("title_similarity_threshold", defaults.title_similarity_threshold))
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"title_similarity_threshold must be in [0, 1], got {threshold}")
    settings = CurationSettings(
        title_similarity_threshold=threshold,
        merged_batch_prefix=str(data.get("merged_batch_prefix", defaults.merged_batch_prefix)),
        recent_title_window=int(data.get("recent_title_window", defaults.recent_title_window)),
        tracking_params=defaults.tracking_params if tracking is None else tuple(tracking),
    )
    log.info("Curation config loaded from %s", path)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> CurationSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
