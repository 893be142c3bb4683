"""Pillow-backed image codecs.

The diff engine only ever sees :class:`Raster` objects; decoding and encoding
of concrete formats happens behind the :class:`ImageCodec` capability so
adapters can be swapped (or added) without touching comparison code.
"""

from __future__ import annotations

import io
import logging
from typing import Protocol, runtime_checkable

import numpy as np
from PIL import Image

from snapdiff.errors import DecodeFailure
from snapdiff.models.raster import Raster

logger = logging.getLogger(__name__)

# Errors Pillow raises for unreadable, truncated or hostile input
PILLOW_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)

# Formats that cannot carry an alpha channel are flattened to RGB on encode
_NO_ALPHA_FORMATS = {"JPEG", "BMP"}


@runtime_checkable
class ImageCodec(Protocol):
    format: str  # lower-case tag, e.g. "png"
    extensions: tuple[str, ...]

    def decode(self, data: bytes, source: str | None = None) -> Raster: ...

    def encode(self, raster: Raster) -> bytes: ...


def image_to_raster(img: Image.Image) -> Raster:
    """Convert any Pillow image mode to an RGBA raster."""
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return Raster.from_array(np.asarray(img, dtype=np.uint8))


def raster_to_image(raster: Raster) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(raster.pixels))


class PillowCodec:
    """Codec for one Pillow format (``pil_format`` is Pillow's own name)."""

    def __init__(
        self,
        format: str,
        pil_format: str,
        extensions: tuple[str, ...],
        save_options: dict | None = None,
        open_formats: tuple[str, ...] = (),
    ):
        self.format = format
        self.pil_format = pil_format
        self.extensions = extensions
        self.save_options = save_options or {}
        # Pillow names for variants decoded by the same codec
        self.open_formats = (pil_format, *open_formats)

    def __repr__(self) -> str:
        return f"PillowCodec({self.format!r})"

    def decode(self, data: bytes, source: str | None = None) -> Raster:
        if not data:
            raise DecodeFailure("empty image data", source)
        try:
            with Image.open(io.BytesIO(data), formats=list(self.open_formats)) as img:
                img.load()
                if img.width == 0 or img.height == 0:
                    raise DecodeFailure("image has zero dimensions", source)
                return image_to_raster(img)
        except DecodeFailure:
            raise
        except PILLOW_DECODE_ERRORS as e:
            raise DecodeFailure(f"cannot decode {self.format}: {e}", source) from e

    def encode(self, raster: Raster) -> bytes:
        img = raster_to_image(raster)
        if self.pil_format in _NO_ALPHA_FORMATS:
            img = img.convert("RGB")
        buf = io.BytesIO()
        try:
            img.save(buf, format=self.pil_format, **self.save_options)
        except PILLOW_DECODE_ERRORS as e:
            raise DecodeFailure(f"cannot encode {self.format}: {e}") from e
        return buf.getvalue()


def pillow_codecs() -> list[PillowCodec]:
    return [
        PillowCodec("png", "PNG", (".png",)),
        # Camera and phone JPEGs carrying several pictures open as MPO
        PillowCodec("jpeg", "JPEG", (".jpg", ".jpeg"), {"quality": 95}, open_formats=("MPO",)),
        PillowCodec("gif", "GIF", (".gif",)),
        PillowCodec("webp", "WEBP", (".webp",), {"lossless": True, "exact": True}),
        PillowCodec("bmp", "BMP", (".bmp",)),
        PillowCodec("tiff", "TIFF", (".tif", ".tiff")),
    ]
