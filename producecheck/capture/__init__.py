from __future__ import annotations

from .source import ImageRef, ImageSource, PillowImageSource, describe_image_ref

__all__ = ["ImageRef", "ImageSource", "PillowImageSource", "describe_image_ref"]
