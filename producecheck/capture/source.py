from __future__ import annotations

import hashlib
import io
from pathlib import Path
from typing import Protocol, Union

from PIL import Image, UnidentifiedImageError

ImageRef = Union[str, Path, bytes]


class ImageSource(Protocol):
    def get_dimensions(self, ref: ImageRef) -> tuple[int, int]: ...

    def open_image(self, ref: ImageRef) -> Image.Image: ...


class PillowImageSource:
    """Read images from the filesystem or from in-memory encoded bytes."""

    def get_dimensions(self, ref: ImageRef) -> tuple[int, int]:
        with self._open(ref) as image:
            return image.size

    def open_image(self, ref: ImageRef) -> Image.Image:
        with self._open(ref) as image:
            try:
                return image.convert("RGB")
            except OSError as exc:
                raise RuntimeError(
                    f"Unable to decode image {describe_image_ref(ref)}: {exc}"
                ) from exc

    def _open(self, ref: ImageRef) -> Image.Image:
        if isinstance(ref, (bytes, bytearray)):
            if not ref:
                raise RuntimeError("Image payload is empty")
            stream: io.BytesIO | Path = io.BytesIO(ref)
        else:
            stream = Path(ref)
            if not stream.is_file():
                raise FileNotFoundError(f"Image not found: {stream}")
        try:
            return Image.open(stream)
        except (UnidentifiedImageError, OSError) as exc:
            raise RuntimeError(
                f"Unable to decode image {describe_image_ref(ref)}: {exc}"
            ) from exc


def describe_image_ref(ref: ImageRef) -> str:
    """Stable, JSON-safe text form of an image reference."""
    if isinstance(ref, (bytes, bytearray)):
        digest = hashlib.sha256(ref).hexdigest()[:16]
        return f"bytes:{digest}"
    return str(ref)


__all__ = ["ImageRef", "ImageSource", "PillowImageSource", "describe_image_ref"]
