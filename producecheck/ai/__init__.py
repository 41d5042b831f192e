from __future__ import annotations

from .types import Classifier, FeatureSet, Prediction, rank_predictions

__all__ = [
    "Classifier",
    "FeatureSet",
    "Prediction",
    "rank_predictions",
    "ImageFeatureProbe",
    "HeuristicQualityModel",
]


def __getattr__(name: str):
    if name == "ImageFeatureProbe":
        from .features import ImageFeatureProbe

        return ImageFeatureProbe
    if name == "HeuristicQualityModel":
        from .heuristic import HeuristicQualityModel

        return HeuristicQualityModel
    raise AttributeError(f"module 'producecheck.ai' has no attribute {name!r}")
