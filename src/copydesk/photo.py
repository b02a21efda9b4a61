"""Persona photo normalization with Pillow.

Uploaded images are bounded twice: the source must be at most 2 MB, and the
stored result is re-encoded as JPEG with the longest edge at most 400 px,
returned as a ``data:`` URL ready for ``Persona.photo_url``.
"""

from __future__ import annotations

import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError

logger = logging.getLogger(__name__)

MAX_SOURCE_BYTES = 2 * 1024 * 1024
MAX_EDGE_PX = 400
JPEG_QUALITY = 85
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP"}

# Ceiling on the stored data URL: a 400x400 JPEG stays far below this
MAX_ENCODED_PHOTO_CHARS = 512 * 1024


def normalize_photo(data: bytes) -> str:
    """Validate and shrink an uploaded image; return a JPEG data URL.

    Raises ValidationError for empty, oversized, unreadable or unsupported
    input.
    """
    if not data:
        raise ValidationError("Photo is empty.")
    if len(data) > MAX_SOURCE_BYTES:
        raise ValidationError(
            f"Image size ({len(data) / 1024 / 1024:.2f}MB) exceeds maximum of 2MB. "
            "Please choose a smaller image."
        )

    try:
        img = Image.open(io.BytesIO(data))
        fmt = img.format
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Photo is not a readable image.") from e
    if fmt not in ALLOWED_FORMATS:
        raise ValidationError(f"Invalid image format ({fmt}). Allowed formats: JPEG, PNG, WebP.")

    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    original = img.size
    img.thumbnail((MAX_EDGE_PX, MAX_EDGE_PX))

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=JPEG_QUALITY)
    encoded = "data:image/jpeg;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
    logger.debug(
        "Normalized photo %s %sx%s → %sx%s (%d chars)",
        fmt,
        original[0],
        original[1],
        img.size[0],
        img.size[1],
        len(encoded),
    )
    if len(encoded) > MAX_ENCODED_PHOTO_CHARS:
        raise ValidationError("Photo is still too large after resizing.")
    return encoded
