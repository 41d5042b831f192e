from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path

from ..capture.source import ImageRef
from .features import ImageFeatureProbe
from .labels import DEFAULT_LABELS, load_labels
from .types import FeatureSet, Prediction, rank_predictions

logger = logging.getLogger(__name__)

MODEL_VERSION = "heuristic-1.0.0"

MIN_SCORE = 0.1
MAX_SCORE = 0.95

# Exposure the scorer treats as ideal.
IDEAL_BRIGHTNESS = 0.65
IDEAL_CONTRAST = 0.6


def orange_match(average_color: tuple[int, int, int]) -> float:
    """Reward high red, moderate green and low blue."""
    r, g, b = average_color
    return min(1.0, (r / 255.0) * (g / 180.0) * (1.0 - b / 60.0))


def base_quality_score(features: FeatureSet) -> float:
    score = 0.5
    score += 0.3 * orange_match(features.average_color)
    score -= 0.4 * abs(features.brightness - IDEAL_BRIGHTNESS)
    score += 0.3 * (features.saturation - 0.5)
    score += 0.2 * (features.uniformity - 0.5)
    score -= 0.1 * abs(features.contrast - IDEAL_CONTRAST)
    return _clamp_score(score)


def _clamp_score(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


@dataclass
class HeuristicQualityModel:
    """Two-class quality scorer driven by colour and exposure features."""

    probe: ImageFeatureProbe = field(default_factory=ImageFeatureProbe)
    labels: list[str] = field(default_factory=lambda: list(DEFAULT_LABELS))
    labels_path: Path | None = None
    rng: random.Random = field(default_factory=random.Random)
    noise_amplitude: float = 0.05
    version: str = MODEL_VERSION
    is_loaded: bool = field(init=False, default=False)

    def initialize(self) -> None:
        if self.is_loaded:
            return
        if self.labels_path is not None:
            self.labels = load_labels(self.labels_path)
        elif len(self.labels) < 2:
            self.labels = list(DEFAULT_LABELS)
        self.is_loaded = True
        logger.info("Heuristic model %s initialised labels=%s", self.version, self.labels)

    def quality_score(self, features: FeatureSet) -> float:
        score = base_quality_score(features)
        if self.noise_amplitude > 0:
            score += self.rng.uniform(-self.noise_amplitude, self.noise_amplitude)
        return _clamp_score(score)

    def predict(self, features: FeatureSet) -> list[Prediction]:
        good_label, bad_label = self._label_pair()
        good = round(self.quality_score(features), 2)
        bad = round(1.0 - good, 2)
        return rank_predictions(
            [
                Prediction(label=good_label, confidence=good),
                Prediction(label=bad_label, confidence=bad),
            ]
        )

    def classify(
        self, image_ref: ImageRef, features: FeatureSet | None = None
    ) -> list[Prediction]:
        if features is None:
            features = self.probe.extract(image_ref)
        return self.predict(features)

    def _label_pair(self) -> tuple[str, str]:
        if len(self.labels) >= 2:
            return self.labels[0], self.labels[1]
        return DEFAULT_LABELS


__all__ = [
    "HeuristicQualityModel",
    "MODEL_VERSION",
    "MAX_SCORE",
    "MIN_SCORE",
    "base_quality_score",
    "orange_match",
]
