from __future__ import annotations

import colorsys
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from ..ai.features import ImageFeatureProbe
from ..ai.heuristic import HeuristicQualityModel
from ..ai.types import Classifier, FeatureSet, rank_predictions
from ..capture.source import ImageRef, describe_image_ref
from .quality_gate import QualityGate
from .verdict import (
    ColorAnalysis,
    FallbackResult,
    Location,
    PrimaryResult,
    QualityAnalysis,
    QualityReport,
    Verdict,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.3

DOMAIN_PATTERN = re.compile(r"good|bad|quality", re.IGNORECASE)
GOOD_PATTERN = re.compile(r"good", re.IGNORECASE)
MOLD_PATTERN = re.compile(r"mold|rotten|bad", re.IGNORECASE)
MOLD_CONFIDENCE_PATTERN = re.compile(r"mold|bad", re.IGNORECASE)

FALLBACK_LABEL = "Color-based heuristic"
FALLBACK_CONFIDENCE = 0.6
FALLBACK_REASON = "Low confidence"

UNANALYZED_LABEL = "Unable to analyze"
FAILED_FALLBACK_LABEL = "Analysis failed"

# Hue upper bounds (degrees) for naming the average colour.
_HUE_NAMES: tuple[tuple[float, str], ...] = (
    (15.0, "red"),
    (45.0, "orange"),
    (70.0, "yellow"),
    (170.0, "green"),
    (260.0, "blue"),
    (330.0, "purple"),
    (360.0, "red"),
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def needs_fallback(primary: PrimaryResult, threshold: float) -> bool:
    return primary.confidence < threshold or not primary.is_domain_match


def analyze_label(label: str, features: FeatureSet) -> QualityAnalysis:
    return QualityAnalysis(
        is_good_quality=bool(GOOD_PATTERN.search(label)),
        has_mold=bool(MOLD_PATTERN.search(label)),
        mold_confidence=0.6 if MOLD_CONFIDENCE_PATTERN.search(label) else 0.2,
        color_analysis=ColorAnalysis(
            dominant_color=dominant_color_name(features.average_color),
            brightness=features.brightness,
            saturation=features.saturation,
        ),
    )


def dominant_color_name(rgb: tuple[int, int, int]) -> str:
    r, g, b = (channel / 255.0 for channel in rgb)
    hue, saturation, value = colorsys.rgb_to_hsv(r, g, b)
    if value < 0.15:
        return "black"
    if saturation < 0.15:
        return "white" if value > 0.85 else "gray"
    if hue * 360.0 < 45.0 and value < 0.5:
        return "brown"
    degrees = hue * 360.0
    for bound, name in _HUE_NAMES:
        if degrees < bound:
            return name
    return "red"


@dataclass
class ClassificationEngine:
    """Turn an image reference into a Verdict.

    ``classify`` never raises: any failure while probing, scoring or
    deriving the verdict produces a degraded Verdict that keeps the id
    generated when the call started.
    """

    classifier: Classifier = field(default_factory=HeuristicQualityModel)
    probe: ImageFeatureProbe = field(default_factory=ImageFeatureProbe)
    quality_gate: QualityGate | None = None
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    id_factory: Callable[[], str] = _new_id
    clock: Callable[[], float] = time.perf_counter
    now: Callable[[], datetime] = _utc_now

    def __post_init__(self) -> None:
        if self.quality_gate is None:
            self.quality_gate = QualityGate(probe=self.probe)
        self.set_confidence_threshold(self.confidence_threshold)

    @property
    def model_version(self) -> str:
        return str(getattr(self.classifier, "version", "external"))

    def initialize(self) -> None:
        initializer = getattr(self.classifier, "initialize", None)
        if callable(initializer):
            initializer()

    def model_info(self) -> dict[str, Any]:
        return {
            "is_loaded": bool(getattr(self.classifier, "is_loaded", True)),
            "model_version": self.model_version,
            "labels": list(getattr(self.classifier, "labels", [])),
            "confidence_threshold": self.confidence_threshold,
        }

    def set_confidence_threshold(self, threshold: float) -> None:
        self.confidence_threshold = max(0.0, min(1.0, float(threshold)))

    def get_confidence_threshold(self) -> float:
        return self.confidence_threshold

    def check_quality(self, image_ref: ImageRef) -> QualityReport:
        return self.quality_gate.check(image_ref)  # type: ignore[union-attr]

    def classify(self, image_ref: ImageRef, location: Location | None = None) -> Verdict:
        started = self.clock()
        verdict_id = self.id_factory()
        timestamp = self.now()
        ref_text = describe_image_ref(image_ref)
        try:
            features = self.probe.extract(image_ref)
            image_quality = self.check_quality(image_ref)
            predictions = rank_predictions(self.classifier.classify(image_ref, features))
            if not predictions:
                raise RuntimeError("No predictions returned from classifier")

            best = predictions[0]
            primary = PrimaryResult(
                label=best.label,
                confidence=best.confidence,
                is_domain_match=bool(DOMAIN_PATTERN.search(best.label)),
            )
            fallback = (
                FallbackResult(
                    label=FALLBACK_LABEL,
                    confidence=FALLBACK_CONFIDENCE,
                    reason=FALLBACK_REASON,
                )
                if needs_fallback(primary, self.confidence_threshold)
                else None
            )
            verdict = Verdict(
                id=verdict_id,
                image_ref=ref_text,
                timestamp=timestamp,
                location=location,
                primary_result=primary,
                fallback_result=fallback,
                quality_analysis=analyze_label(primary.label, features),
                image_quality=image_quality,
                processing_time_ms=self._elapsed_ms(started),
                model_version=self.model_version,
                preprocessing_applied=features.preprocessing,
                predictions=tuple(predictions),
            )
        except Exception as exc:
            logger.exception("Classification failed id=%s image=%s", verdict_id, ref_text)
            return self._degraded(verdict_id, ref_text, timestamp, location, started, exc)

        logger.info(
            "Classification complete id=%s label=%s confidence=%.2f fallback=%s valid_image=%s",
            verdict.id,
            primary.label,
            primary.confidence,
            fallback is not None,
            image_quality.is_valid,
        )
        return verdict

    def _degraded(
        self,
        verdict_id: str,
        ref_text: str,
        timestamp: datetime,
        location: Location | None,
        started: float,
        exc: BaseException,
    ) -> Verdict:
        reason = str(exc) or exc.__class__.__name__
        return Verdict(
            id=verdict_id,
            image_ref=ref_text,
            timestamp=timestamp,
            location=location,
            primary_result=PrimaryResult(
                label=UNANALYZED_LABEL, confidence=0.0, is_domain_match=False
            ),
            fallback_result=FallbackResult(
                label=FAILED_FALLBACK_LABEL, confidence=0.0, reason=reason
            ),
            quality_analysis=QualityAnalysis.empty(),
            image_quality=QualityReport.failed(f"Analysis failed: {reason}"),
            processing_time_ms=self._elapsed_ms(started),
            model_version=self.model_version,
        )

    def _elapsed_ms(self, started: float) -> float:
        return max(0.0, (self.clock() - started) * 1000.0)


__all__ = [
    "ClassificationEngine",
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "analyze_label",
    "dominant_color_name",
    "needs_fallback",
]
