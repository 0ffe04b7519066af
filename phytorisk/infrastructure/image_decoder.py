"""
Infrastructure layer: Image decoding with Pillow.
"""
from dataclasses import dataclass
from io import BytesIO
from typing import Optional
import base64
import binascii
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when uploaded bytes cannot be decoded into pixels."""
    pass


@dataclass
class DecodedImage:
    """A decoded photo with its upload metadata."""
    pixels: np.ndarray
    width: int
    height: int
    mime_type: Optional[str]
    size_bytes: int


# Modes Image.reduce works on directly
REDUCIBLE_MODES = ("L", "LA", "RGB", "RGBA")


def _shrink(image: Image.Image, max_side: int) -> Image.Image:
    """
    Shrink an opened image while keeping its longer side >= ``max_side``.

    JPEG data is decoded at a reduced DCT scale via ``draft``; other formats
    are reduced by an integer box factor.
    """
    image.draft("RGB", (max_side, max_side))

    factor = max(image.size) // max_side
    if factor <= 1:
        return image

    if image.mode not in REDUCIBLE_MODES:
        image = image.convert("RGB")
    return image.reduce(factor)


def decode_image(
    data: bytes,
    declared_mime: Optional[str] = None,
    max_side: Optional[int] = None,
) -> DecodedImage:
    """
    Decode image bytes into an RGB pixel array.

    Args:
        data: Raw image file bytes
        declared_mime: MIME type sent by the client; when absent the type
            detected by Pillow is used
        max_side: When set, large images are shrunk while decoding so the
            pixel array is not held at full resolution; ``width`` and
            ``height`` still report the source dimensions

    Returns:
        DecodedImage with an ``(H, W, 3)`` uint8 array

    Raises:
        ImageDecodeError: If the bytes are empty, corrupt, not an image,
            or exceed Pillow's decompression-bomb limit
    """
    if not data:
        raise ImageDecodeError("Empty image payload")

    try:
        with Image.open(BytesIO(data)) as image:
            detected_mime = Image.MIME.get(image.format or "")
            width, height = image.size
            if max_side:
                image = _shrink(image, max_side)
            pixels = np.asarray(image.convert("RGB"))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(f"Could not decode image ({len(data)} bytes): {e}")
        raise ImageDecodeError(f"Could not decode image: {e}") from e

    logger.debug(
        f"Decoded {detected_mime or 'unknown'} image {width}x{height} "
        f"to {pixels.shape[1]}x{pixels.shape[0]}"
    )

    return DecodedImage(
        pixels=pixels,
        width=width,
        height=height,
        mime_type=declared_mime or detected_mime,
        size_bytes=len(data),
    )


def decode_base64_image(text: str, max_side: Optional[int] = None) -> DecodedImage:
    """
    Decode a base64 string or a ``data:<mime>;base64,`` URL.

    Args:
        text: Base64 payload, optionally prefixed with a data URL header
        max_side: Passed through to ``decode_image``

    Returns:
        DecodedImage; the MIME type from the data URL header wins when present

    Raises:
        ImageDecodeError: If the text is not valid base64 or not an image
    """
    declared_mime = None

    if "," in text:
        header, text = text.split(",", 1)
        if header.startswith("data:"):
            declared_mime = header[len("data:"):].split(";", 1)[0] or None

    try:
        data = base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image: {e}") from e

    return decode_image(data, declared_mime, max_side)
