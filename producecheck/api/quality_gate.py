from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from ..ai.features import ImageFeatureProbe
from ..ai.types import FeatureSet
from ..capture.source import ImageRef
from .verdict import QualityReport

logger = logging.getLogger(__name__)

DEFAULT_MIN_WIDTH = 224
DEFAULT_MIN_HEIGHT = 224
DEFAULT_MIN_BRIGHTNESS = 0.1
DEFAULT_MAX_BLUR = 0.5


class FeatureProbe(Protocol):
    def extract(self, image_ref: ImageRef) -> FeatureSet: ...

    def estimate_blur(self, image_ref: ImageRef) -> float: ...


@dataclass
class QualityGate:
    """Decide whether an image is usable for analysis.

    Resolution, brightness and blur are checked independently and every
    failing check contributes one message to ``issues``.
    """

    probe: FeatureProbe = field(default_factory=ImageFeatureProbe)
    min_width: int = DEFAULT_MIN_WIDTH
    min_height: int = DEFAULT_MIN_HEIGHT
    min_brightness: float = DEFAULT_MIN_BRIGHTNESS
    max_blur: float = DEFAULT_MAX_BLUR

    def __post_init__(self) -> None:
        self.set_minimum_resolution(self.min_width, self.min_height)
        self.set_minimum_brightness(self.min_brightness)
        self.set_maximum_blur(self.max_blur)

    def check(self, image_ref: ImageRef) -> QualityReport:
        try:
            features = self.probe.extract(image_ref)
            blur = self.probe.estimate_blur(image_ref)
        except Exception as exc:
            logger.warning("Image quality check failed: %s", exc)
            return QualityReport.failed(f"Failed to analyze image: {exc}")
        return self.evaluate(features, blur)

    def evaluate(self, features: FeatureSet, blur: float) -> QualityReport:
        issues: list[str] = []
        width, height = features.width, features.height
        if width < self.min_width or height < self.min_height:
            issues.append(
                f"Image too small: {width}x{height} "
                f"(minimum: {self.min_width}x{self.min_height})"
            )
        brightness = features.brightness
        if brightness < self.min_brightness:
            issues.append(
                f"Image too dark: brightness {brightness:.2f} "
                f"(minimum: {self.min_brightness})"
            )
        if blur > self.max_blur:
            issues.append(
                f"Image too blurry: blur score {blur:.2f} (maximum: {self.max_blur})"
            )
        if issues:
            logger.info("Image quality issues: %s", "; ".join(issues))
        return QualityReport(
            is_valid=not issues,
            resolution=(width, height),
            brightness=brightness,
            blur=blur,
            issues=tuple(issues),
        )

    def set_minimum_resolution(self, width: int, height: int) -> None:
        self.min_width = max(0, int(width))
        self.min_height = max(0, int(height))

    def set_minimum_brightness(self, brightness: float) -> None:
        self.min_brightness = max(0.0, min(1.0, float(brightness)))

    def set_maximum_blur(self, blur: float) -> None:
        self.max_blur = max(0.0, min(1.0, float(blur)))


__all__ = [
    "FeatureProbe",
    "QualityGate",
    "DEFAULT_MAX_BLUR",
    "DEFAULT_MIN_BRIGHTNESS",
    "DEFAULT_MIN_HEIGHT",
    "DEFAULT_MIN_WIDTH",
]
