"""Structured records produced by one classification call.

All records are frozen; ``to_dict``/``from_dict`` give the JSON-compatible
form used by the result store snapshot and the HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from ..ai.types import Prediction


@dataclass(frozen=True)
class QualityReport:
    is_valid: bool
    resolution: tuple[int, int]
    brightness: float
    blur: float
    issues: tuple[str, ...] = ()

    @classmethod
    def failed(cls, message: str) -> "QualityReport":
        return cls(
            is_valid=False,
            resolution=(0, 0),
            brightness=0.0,
            blur=1.0,
            issues=(message,),
        )

    def to_dict(self) -> dict[str, Any]:
        width, height = self.resolution
        return {
            "is_valid": self.is_valid,
            "resolution": {"width": width, "height": height},
            "brightness": self.brightness,
            "blur": self.blur,
            "issues": list(self.issues),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QualityReport":
        data = _require_mapping(data, "image_quality")
        resolution = _require_mapping(data.get("resolution") or {}, "image_quality.resolution")
        return cls(
            is_valid=bool(data.get("is_valid", False)),
            resolution=(int(resolution.get("width", 0)), int(resolution.get("height", 0))),
            brightness=float(data.get("brightness", 0.0)),
            blur=float(data.get("blur", 1.0)),
            issues=tuple(str(issue) for issue in data.get("issues", [])),
        )


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Location":
        address = data.get("address")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            address=str(address) if address is not None else None,
        )


@dataclass(frozen=True)
class PrimaryResult:
    label: str
    confidence: float
    is_domain_match: bool


@dataclass(frozen=True)
class FallbackResult:
    label: str
    confidence: float
    reason: str


@dataclass(frozen=True)
class ColorAnalysis:
    dominant_color: str
    brightness: float
    saturation: float


@dataclass(frozen=True)
class QualityAnalysis:
    is_good_quality: bool
    has_mold: bool
    mold_confidence: float
    color_analysis: ColorAnalysis

    @classmethod
    def empty(cls) -> "QualityAnalysis":
        return cls(
            is_good_quality=False,
            has_mold=False,
            mold_confidence=0.0,
            color_analysis=ColorAnalysis(dominant_color="unknown", brightness=0.0, saturation=0.0),
        )


@dataclass(frozen=True)
class Verdict:
    id: str
    image_ref: str
    timestamp: datetime
    primary_result: PrimaryResult
    quality_analysis: QualityAnalysis
    image_quality: QualityReport
    processing_time_ms: float
    model_version: str
    preprocessing_applied: tuple[str, ...] = ()
    fallback_result: FallbackResult | None = None
    location: Location | None = None
    predictions: tuple[Prediction, ...] = ()

    @property
    def badge(self) -> str:
        if self.quality_analysis.has_mold:
            return "Mold Detected"
        if self.quality_analysis.is_good_quality:
            return "Good Quality"
        return "Bad Quality"

    def to_dict(self) -> dict[str, Any]:
        primary = self.primary_result
        analysis = self.quality_analysis
        fallback = self.fallback_result
        return {
            "id": self.id,
            "image_ref": self.image_ref,
            "timestamp": self.timestamp.isoformat(),
            "location": self.location.to_dict() if self.location else None,
            "primary_result": {
                "label": primary.label,
                "confidence": primary.confidence,
                "is_domain_match": primary.is_domain_match,
            },
            "fallback_result": (
                {
                    "label": fallback.label,
                    "confidence": fallback.confidence,
                    "reason": fallback.reason,
                }
                if fallback
                else None
            ),
            "quality_analysis": {
                "is_good_quality": analysis.is_good_quality,
                "has_mold": analysis.has_mold,
                "mold_confidence": analysis.mold_confidence,
                "color_analysis": {
                    "dominant_color": analysis.color_analysis.dominant_color,
                    "brightness": analysis.color_analysis.brightness,
                    "saturation": analysis.color_analysis.saturation,
                },
            },
            "image_quality": self.image_quality.to_dict(),
            "processing_time_ms": self.processing_time_ms,
            "model_version": self.model_version,
            "preprocessing_applied": list(self.preprocessing_applied),
            "predictions": [
                {"label": p.label, "confidence": p.confidence} for p in self.predictions
            ],
            "badge": self.badge,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Verdict":
        data = _require_mapping(data, "verdict")
        primary = _require_mapping(data["primary_result"], "primary_result")
        fallback = data.get("fallback_result")
        analysis = _require_mapping(data["quality_analysis"], "quality_analysis")
        color = _require_mapping(analysis.get("color_analysis") or {}, "color_analysis")
        location = data.get("location")
        return cls(
            id=str(data["id"]),
            image_ref=str(data["image_ref"]),
            timestamp=parse_timestamp(data["timestamp"]),
            location=Location.from_dict(location) if isinstance(location, dict) else None,
            primary_result=PrimaryResult(
                label=str(primary["label"]),
                confidence=float(primary["confidence"]),
                is_domain_match=bool(primary["is_domain_match"]),
            ),
            fallback_result=(
                FallbackResult(
                    label=str(fallback["label"]),
                    confidence=float(fallback["confidence"]),
                    reason=str(fallback["reason"]),
                )
                if isinstance(fallback, dict)
                else None
            ),
            quality_analysis=QualityAnalysis(
                is_good_quality=bool(analysis["is_good_quality"]),
                has_mold=bool(analysis["has_mold"]),
                mold_confidence=float(analysis.get("mold_confidence", 0.0)),
                color_analysis=ColorAnalysis(
                    dominant_color=str(color.get("dominant_color", "unknown")),
                    brightness=float(color.get("brightness", 0.0)),
                    saturation=float(color.get("saturation", 0.0)),
                ),
            ),
            image_quality=QualityReport.from_dict(data["image_quality"]),
            processing_time_ms=float(data.get("processing_time_ms", 0.0)),
            model_version=str(data.get("model_version", "")),
            preprocessing_applied=tuple(str(step) for step in data.get("preprocessing_applied", [])),
            predictions=tuple(
                Prediction(label=str(p["label"]), confidence=float(p["confidence"]))
                for p in data.get("predictions", [])
            ),
        )


def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be an object, got {type(value).__name__}")
    return value


def parse_timestamp(value: str) -> datetime:
    text = str(value).strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "ColorAnalysis",
    "FallbackResult",
    "Location",
    "PrimaryResult",
    "QualityAnalysis",
    "QualityReport",
    "Verdict",
    "parse_timestamp",
]
