"""Format-tag dispatch over the available image codecs."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image

from snapdiff.errors import DecodeFailure
from snapdiff.models.raster import Raster

from .pillow_codec import PILLOW_DECODE_ERRORS, ImageCodec, pillow_codecs

logger = logging.getLogger(__name__)

_FORMAT_ALIASES = {"jpg": "jpeg", "tif": "tiff", "mpo": "jpeg"}

# Formats that store RGBA rasters bit-exactly, the only ones fit for snapshots
LOSSLESS_FORMATS = ("png", "tiff", "webp")


def normalize_format(tag: str) -> str:
    tag = tag.lower().lstrip(".")
    return _FORMAT_ALIASES.get(tag, tag)


class CodecRegistry:
    """Maps format tags and file extensions to codecs."""

    def __init__(self, codecs: list[ImageCodec] | None = None):
        self._by_format: dict[str, ImageCodec] = {}
        self._by_extension: dict[str, ImageCodec] = {}
        for codec in codecs or []:
            self.register(codec)

    def register(self, codec: ImageCodec) -> None:
        """Add a codec, replacing any codec already registered for its tag/extensions."""
        self._by_format[normalize_format(codec.format)] = codec
        for ext in codec.extensions:
            self._by_extension[ext.lower()] = codec
        logger.debug("Registered codec %s for %s", codec.format, ", ".join(codec.extensions))

    @property
    def formats(self) -> list[str]:
        return sorted(self._by_format)

    def get(self, format_tag: str) -> ImageCodec:
        codec = self._by_format.get(normalize_format(format_tag))
        if codec is None:
            raise DecodeFailure(f"no codec registered for format '{format_tag}'")
        return codec

    def for_path(self, path: str | Path) -> ImageCodec:
        suffix = Path(path).suffix.lower()
        codec = self._by_extension.get(suffix)
        if codec is None:
            raise DecodeFailure(f"unsupported image extension '{suffix}'", Path(path).name)
        return codec

    def is_image_path(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self._by_extension

    def sniff(self, data: bytes, source: str | None = None) -> ImageCodec:
        """Identify the codec for raw bytes from their content, not their name."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                detected = img.format or ""
        except PILLOW_DECODE_ERRORS as e:
            raise DecodeFailure(f"unrecognised image data: {e}", source) from e
        return self.get(detected)

    def decode(self, data: bytes, source: str | None = None) -> Raster:
        if not data:
            raise DecodeFailure("empty image data", source)
        return self.sniff(data, source).decode(data, source)

    def read(self, path: str | Path) -> Raster:
        """Read and decode an image file; I/O errors surface as DecodeFailure."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DecodeFailure(f"cannot read file: {e}", path.name) from e
        return self.decode(data, path.name)

    def encode(self, raster: Raster, format_tag: str) -> bytes:
        return self.get(format_tag).encode(raster)


def default_registry() -> CodecRegistry:
    return CodecRegistry(pillow_codecs())


def decode_image(data: bytes, source: str | None = None) -> Raster:
    return default_registry().decode(data, source)


def read_raster(path: str | Path) -> Raster:
    return default_registry().read(path)


def encode_raster(raster: Raster, format_tag: str = "png") -> bytes:
    return default_registry().encode(raster, format_tag)
