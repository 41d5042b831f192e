from __future__ import annotations

import logging
from dataclasses import dataclass, field

from PIL import Image, ImageFilter, ImageStat

try:
    _RESAMPLE = Image.Resampling.BILINEAR  # type: ignore[attr-defined]
except AttributeError:  # pragma: no cover - Pillow < 9 fallback
    _RESAMPLE = Image.BILINEAR  # type: ignore[attr-defined]

from ..capture.source import ImageRef, ImageSource, PillowImageSource
from .types import FeatureSet

logger = logging.getLogger(__name__)

# Largest side of the working copy used for all pixel statistics.
ANALYSIS_SIZE = 224

# Standard deviation of the edge response at which an image counts as fully sharp.
SHARP_EDGE_STDDEV = 40.0

# Largest possible standard deviation of an 8-bit channel.
_MAX_STDDEV = 127.5


@dataclass
class ImageFeatureProbe:
    """Extract a FeatureSet from an image reference using Pillow statistics."""

    source: ImageSource = field(default_factory=PillowImageSource)
    analysis_size: int = ANALYSIS_SIZE

    def extract(self, image_ref: ImageRef) -> FeatureSet:
        width, height = self.source.get_dimensions(image_ref)
        if width <= 0 or height <= 0:
            raise ValueError(f"Image has invalid dimensions {width}x{height}")
        working, steps = self._prepare(self.source.open_image(image_ref))

        rgb_stats = ImageStat.Stat(working)
        average_color = tuple(_clamp_channel(value) for value in rgb_stats.mean[:3])
        luma_stats = ImageStat.Stat(working.convert("L"))
        hsv_stats = ImageStat.Stat(working.convert("HSV"))

        brightness = _unit(luma_stats.mean[0] / 255.0)
        contrast = _unit(luma_stats.stddev[0] / _MAX_STDDEV)
        saturation = _unit(hsv_stats.mean[1] / 255.0)
        channel_spread = sum(rgb_stats.stddev[:3]) / 3.0
        uniformity = _unit(1.0 - channel_spread / _MAX_STDDEV)

        features = FeatureSet(
            width=int(width),
            height=int(height),
            average_color=average_color,  # type: ignore[arg-type]
            brightness=brightness,
            saturation=saturation,
            contrast=contrast,
            uniformity=uniformity,
            preprocessing=tuple(steps),
        )
        logger.debug(
            "Extracted features size=%dx%d color=%s brightness=%.2f saturation=%.2f",
            features.width,
            features.height,
            features.average_color,
            features.brightness,
            features.saturation,
        )
        return features

    def estimate_blur(self, image_ref: ImageRef) -> float:
        """Blur score in [0, 1]; 0 is crisp, 1 has no detectable edges."""
        working, _ = self._prepare(self.source.open_image(image_ref))
        edges = working.convert("L").filter(ImageFilter.FIND_EDGES)
        # FIND_EDGES passes the outer pixel ring through unfiltered.
        if edges.width <= 2 or edges.height <= 2:
            return 1.0
        edges = edges.crop((1, 1, edges.width - 1, edges.height - 1))
        edge_stddev = ImageStat.Stat(edges).stddev[0]
        return _unit(1.0 - edge_stddev / SHARP_EDGE_STDDEV)

    def _prepare(self, image: Image.Image) -> tuple[Image.Image, list[str]]:
        steps: list[str] = []
        if max(image.size) > self.analysis_size:
            image = image.copy()
            image.thumbnail((self.analysis_size, self.analysis_size), _RESAMPLE)
            steps.append("resize")
        if image.mode != "RGB":
            image = image.convert("RGB")
        steps.append("normalize")
        return image, steps


def _clamp_channel(value: float) -> int:
    return int(round(max(0.0, min(255.0, value))))


def _unit(value: float) -> float:
    return float(max(0.0, min(1.0, value)))


__all__ = ["ImageFeatureProbe", "ANALYSIS_SIZE", "SHARP_EDGE_STDDEV"]
