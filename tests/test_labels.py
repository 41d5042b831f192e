from __future__ import annotations

from producecheck.ai.labels import DEFAULT_LABELS, load_labels, parse_labels


def test_parse_labels_skips_blank_lines() -> None:
    assert parse_labels("Fresh Good\r\n\r\n  Rotten Bad  \n") == ["Fresh Good", "Rotten Bad"]


def test_load_labels_from_file(tmp_path) -> None:
    path = tmp_path / "labels.txt"
    path.write_text("Ripe Good Quality\nSpoiled Bad Quality\n", encoding="utf-8")

    assert load_labels(path) == ["Ripe Good Quality", "Spoiled Bad Quality"]


def test_missing_or_short_label_files_use_defaults(tmp_path) -> None:
    single = tmp_path / "single.txt"
    single.write_text("Only One\n", encoding="utf-8")

    assert load_labels(tmp_path / "missing.txt") == list(DEFAULT_LABELS)
    assert load_labels(single) == list(DEFAULT_LABELS)
    assert load_labels(None) == ["Good Quality", "Bad Quality"]
