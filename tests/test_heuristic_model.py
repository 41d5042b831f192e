from __future__ import annotations

import random

import pytest

from producecheck.ai.heuristic import (
    MAX_SCORE,
    MIN_SCORE,
    HeuristicQualityModel,
    base_quality_score,
    orange_match,
)
from producecheck.ai.types import Classifier, FeatureSet, Prediction, rank_predictions


def _features(**overrides) -> FeatureSet:
    values = dict(
        width=640,
        height=480,
        average_color=(230, 130, 10),
        brightness=0.65,
        saturation=0.8,
        contrast=0.6,
        uniformity=0.7,
    )
    values.update(overrides)
    return FeatureSet(**values)


def _random_features(rng: random.Random) -> FeatureSet:
    return FeatureSet(
        width=rng.randint(1, 4000),
        height=rng.randint(1, 4000),
        average_color=(rng.randint(0, 255), rng.randint(0, 255), rng.randint(0, 255)),
        brightness=rng.random(),
        saturation=rng.random(),
        contrast=rng.random(),
        uniformity=rng.random(),
    )


def test_orange_scene_scores_above_neutral() -> None:
    match = (230 / 255) * (130 / 180) * (1 - 10 / 60)
    expected = 0.5 + 0.3 * match + 0.3 * 0.3 + 0.2 * 0.2

    assert orange_match((230, 130, 10)) == pytest.approx(match)
    assert base_quality_score(_features()) == pytest.approx(expected)
    assert base_quality_score(_features()) > 0.5


def test_scores_stay_in_range_with_noise() -> None:
    rng = random.Random(7)
    model = HeuristicQualityModel(rng=random.Random(11))
    for _ in range(500):
        features = _random_features(rng)
        assert MIN_SCORE <= base_quality_score(features) <= MAX_SCORE
        assert MIN_SCORE <= model.quality_score(features) <= MAX_SCORE


def test_predictions_are_ranked_and_sum_to_one() -> None:
    rng = random.Random(3)
    model = HeuristicQualityModel(rng=random.Random(5))
    for _ in range(200):
        predictions = model.predict(_random_features(rng))
        assert len(predictions) == 2
        assert predictions[0].confidence >= predictions[1].confidence
        assert sum(p.confidence for p in predictions) == pytest.approx(1.0, abs=0.011)
        assert {p.label for p in predictions} == {"Good Quality", "Bad Quality"}


def test_good_label_wins_for_orange_scene() -> None:
    model = HeuristicQualityModel(noise_amplitude=0.0)

    predictions = model.predict(_features())

    assert predictions[0].label == "Good Quality"
    assert predictions[0].confidence == round(base_quality_score(_features()), 2)


def test_dark_blue_scene_favours_bad_label() -> None:
    model = HeuristicQualityModel(noise_amplitude=0.0)
    features = _features(
        average_color=(0, 0, 255), brightness=0.0, saturation=0.0, contrast=0.0, uniformity=0.0
    )

    predictions = model.predict(features)

    assert predictions == [
        Prediction(label="Bad Quality", confidence=0.9),
        Prediction(label="Good Quality", confidence=0.1),
    ]


def test_seeded_models_are_deterministic() -> None:
    first = HeuristicQualityModel(rng=random.Random(42))
    second = HeuristicQualityModel(rng=random.Random(42))

    assert first.predict(_features()) == second.predict(_features())


def test_rank_predictions_keeps_input_order_on_ties() -> None:
    ranked = rank_predictions(
        [Prediction("first", 0.5), Prediction("second", 0.5), Prediction("third", 0.7)]
    )

    assert [p.label for p in ranked] == ["third", "first", "second"]


def test_initialize_loads_labels(tmp_path) -> None:
    path = tmp_path / "labels.txt"
    path.write_text("Fresh Good\nMoldy Bad\n", encoding="utf-8")
    model = HeuristicQualityModel(labels_path=path, noise_amplitude=0.0)

    model.initialize()
    model.initialize()

    assert model.is_loaded
    assert model.labels == ["Fresh Good", "Moldy Bad"]
    assert model.predict(_features())[0].label == "Fresh Good"


def test_classify_extracts_features_when_missing() -> None:
    class _Probe:
        def __init__(self) -> None:
            self.calls = 0

        def extract(self, image_ref):
            self.calls += 1
            return _features()

    probe = _Probe()
    model = HeuristicQualityModel(probe=probe, noise_amplitude=0.0)  # type: ignore[arg-type]

    model.classify("image.jpg")
    model.classify("image.jpg", _features())

    assert probe.calls == 1


def test_model_satisfies_classifier_protocol_structurally() -> None:
    model = HeuristicQualityModel(noise_amplitude=0.0)

    assert Classifier not in type(model).__mro__
    assert callable(model.classify)
