from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LABELS: tuple[str, str] = ("Good Quality", "Bad Quality")


def parse_labels(content: str) -> list[str]:
    return [line.strip() for line in content.splitlines() if line.strip()]


def load_labels(path: Path | None) -> list[str]:
    """Load the two-class label list, falling back to the defaults.

    The first label names the good class, the second the bad class. A
    missing or unreadable file, or one with fewer than two labels, yields
    ``DEFAULT_LABELS``.
    """
    if path is None:
        logger.info("No label file configured; using default labels")
        return list(DEFAULT_LABELS)
    try:
        labels = parse_labels(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to load labels from %s: %s; using defaults", path, exc)
        return list(DEFAULT_LABELS)
    if len(labels) < 2:
        logger.warning(
            "Label file %s lists %d label(s); using defaults", path, len(labels)
        )
        return list(DEFAULT_LABELS)
    logger.info("Labels loaded from %s: %s", path, labels)
    return labels


__all__ = ["DEFAULT_LABELS", "load_labels", "parse_labels"]
