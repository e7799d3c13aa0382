"""
Image Normalization Pipeline - bounded WebP logos

Prepares a user-selected company logo for upload:

    bytes → [decode] → [fit inside 500x500, never upscale] → [WebP q=90]

Three steps run strictly in order. Decoding and encoding are CPU bound and
run in a worker thread so the event loop stays responsive; they are not
cancellable once started. The input bytes are never modified.

Errors:
    DecodeError: input is empty, unreadable or not an image
    EncodeError: re-encoding failed or produced no bytes

Sizing:
    scale = min(1, MAX_DIMENSION / max(width, height))
    target = max(1, round(side * scale)), with halves rounded up
"""

import asyncio
import io
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from app.config import get_settings

logger = logging.getLogger(__name__)

MAX_DIMENSION = 500
WEBP_QUALITY = 90
OUTPUT_FORMAT = "WEBP"
OUTPUT_EXTENSION = ".webp"
OUTPUT_CONTENT_TYPE = "image/webp"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


class ImageProcessingError(Exception):
    """Base error for logo normalization failures."""
    pass


class DecodeError(ImageProcessingError):
    """The file could not be read or is not a decodable image."""
    pass


class EncodeError(ImageProcessingError):
    """Re-encoding produced no output."""
    pass


@dataclass(frozen=True)
class NormalizedImage:
    """Re-encoded logo ready for upload."""
    filename: str
    content_type: str
    data: bytes
    width: int
    height: int
    original_width: int
    original_height: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def target_size(width: int, height: int, max_dimension: int = MAX_DIMENSION) -> Tuple[int, int]:
    """
    Dimensions bounded by max_dimension on the longest edge.

    >>> target_size(1000, 2000)
    (250, 500)
    >>> target_size(300, 200)
    (300, 200)
    """
    largest = max(width, height)
    scale = min(1.0, max_dimension / largest) if largest > 0 else 1.0
    return (
        max(1, _round_half_up(width * scale)),
        max(1, _round_half_up(height * scale)),
    )


def output_filename(filename: str) -> str:
    """Replace the last extension of a file name with .webp."""
    return _EXTENSION_RE.sub("", filename or "") + OUTPUT_EXTENSION


def decode_image(data: bytes) -> Image.Image:
    """
    Decode bytes into an in-memory bitmap.

    Honors EXIF orientation and flattens palette/CMYK modes into RGB(A),
    the modes WebP can carry.
    """
    if not data:
        raise DecodeError("Empty file")

    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to load image: {e}") from e

    if image.width < 1 or image.height < 1:
        raise DecodeError("Image has no pixels")

    if image.mode not in ("RGB", "RGBA"):
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")
    return image


def encode_image(
    image: Image.Image,
    max_dimension: int = MAX_DIMENSION,
    quality: int = WEBP_QUALITY,
) -> Tuple[bytes, int, int]:
    """Resize within bounds and encode as WebP. Returns (bytes, width, height)."""
    width, height = target_size(image.width, image.height, max_dimension)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=OUTPUT_FORMAT, quality=quality)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Image conversion failed: {e}") from e

    data = buffer.getvalue()
    if not data:
        raise EncodeError("Image conversion failed: no output")
    return data, width, height


def _normalized(filename: str, image: Image.Image, encoded: bytes, width: int, height: int) -> NormalizedImage:
    return NormalizedImage(
        filename=output_filename(filename),
        content_type=OUTPUT_CONTENT_TYPE,
        data=encoded,
        width=width,
        height=height,
        original_width=image.width,
        original_height=image.height,
    )


def normalize_image(
    data: bytes,
    filename: str,
    max_dimension: int = MAX_DIMENSION,
    quality: int = WEBP_QUALITY,
) -> NormalizedImage:
    """Synchronous decode + resize + encode."""
    image = decode_image(data)
    encoded, width, height = encode_image(image, max_dimension, quality)
    return _normalized(filename, image, encoded, width, height)


async def read_source(source: Union[bytes, Any]) -> bytes:
    """Read raw bytes from bytes or an object with an async read() (UploadFile)."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        return await source.read()
    except (OSError, ValueError) as e:
        raise DecodeError(f"Failed to read file: {e}") from e


async def convert_image(source: Union[bytes, Any], filename: str) -> NormalizedImage:
    """
    Read, decode and re-encode a selected logo file.

    Args:
        source: Raw bytes or an upload object exposing async read()
        filename: Original file name; its base name is kept

    Returns:
        NormalizedImage sized to the configured maximum edge

    Raises:
        DecodeError, EncodeError
    """
    settings = get_settings()
    data = await read_source(source)
    image = await asyncio.to_thread(decode_image, data)
    encoded, width, height = await asyncio.to_thread(
        encode_image, image, settings.max_image_dimension, settings.webp_quality
    )
    logger.info(f"Normalized {filename!r}: {image.width}x{image.height} -> {width}x{height} ({len(encoded)} bytes)")
    return _normalized(filename, image, encoded, width, height)
