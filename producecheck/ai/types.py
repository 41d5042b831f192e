from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from ..capture.source import ImageRef


@dataclass(frozen=True)
class FeatureSet:
    """Coarse numeric descriptors of one image."""

    width: int
    height: int
    average_color: tuple[int, int, int]
    brightness: float
    saturation: float
    contrast: float
    uniformity: float
    preprocessing: tuple[str, ...] = ()


@dataclass(frozen=True)
class Prediction:
    label: str
    confidence: float


class Classifier(Protocol):
    def classify(
        self, image_ref: ImageRef, features: FeatureSet | None = None
    ) -> list[Prediction]: ...


def rank_predictions(predictions: Iterable[Prediction]) -> list[Prediction]:
    # sorted() is stable, so equal confidences keep their input order.
    return sorted(predictions, key=lambda p: p.confidence, reverse=True)


__all__ = ["Classifier", "FeatureSet", "Prediction", "rank_predictions"]
