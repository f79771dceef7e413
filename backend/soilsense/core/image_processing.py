"""Image utilities for soil uploads.

* ``validate_upload`` enforces size and MIME constraints before analysis.
* ``extract_color`` samples the mean color of the image center using Pillow.
* ``history_image_data`` shrinks the upload to a WebP thumbnail data URL for
  the local history blob.
"""

from __future__ import annotations

import base64
import io
import logging
from typing import Optional

from PIL import Image, ImageOps, ImageStat, UnidentifiedImageError

from soilsense.core.errors import DecodeError, InvalidUpload
from soilsense.services.ai.soil.contracts import ColorSample

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

SAMPLE_SIZE = 50

# History keeps a thumbnail, not the full upload.
THUMBNAIL_MAX_SIZE = (400, 300)
THUMBNAIL_QUALITY = 80

_EXTENSION_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


def _resolve_content_type(content_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    """Return the declared content type, or guess it from the extension."""
    if content_type and content_type.lower() != "application/octet-stream":
        return content_type.lower()
    if filename and "." in filename:
        return _EXTENSION_TYPES.get(filename.rsplit(".", 1)[-1].lower())
    return None


def validate_upload(
    content: bytes,
    *,
    content_type: Optional[str],
    filename: Optional[str],
    max_size: int,
    allowed_types: list[str],
) -> str:
    """Check an upload against the configured constraints.

    Returns the resolved content type. Raises ``InvalidUpload`` (413 for
    oversize files, 400 otherwise).
    """
    if not content:
        raise InvalidUpload("No file provided")
    if len(content) > max_size:
        raise InvalidUpload(
            f"File size exceeds {max_size / 1024 / 1024:.1f}MB limit",
            status_code=413,
        )
    resolved = _resolve_content_type(content_type, filename)
    allowed = {t.lower() for t in allowed_types}
    if resolved is None or resolved not in allowed:
        raise InvalidUpload("Invalid file type. Please upload JPEG or PNG images only")
    return resolved


def _sample_box(width: int, height: int, size: int = SAMPLE_SIZE) -> tuple[int, int, int, int]:
    """Square of *size* centered on the image, clamped to its bounds."""
    left = max(0, width // 2 - size // 2)
    top = max(0, height // 2 - size // 2)
    right = min(width, left + size)
    bottom = min(height, top + size)
    return left, top, right, bottom


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def extract_color(content: bytes) -> ColorSample:
    """Mean RGB of the central sample region of *content*.

    Raises ``DecodeError`` if Pillow cannot read the image.
    """
    try:
        img = Image.open(io.BytesIO(content))
        img = ImageOps.exif_transpose(img)  # auto-orient
        rgb = img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc

    if rgb.width == 0 or rgb.height == 0:
        raise DecodeError("Image has no pixels")

    region = rgb.crop(_sample_box(rgb.width, rgb.height))
    r_mean, g_mean, b_mean = ImageStat.Stat(region).mean
    sample = ColorSample.from_means(
        _round_half_up(r_mean),
        _round_half_up(g_mean),
        _round_half_up(b_mean),
    )
    logger.debug(
        "Sampled color r=%d g=%d b=%d dominant=%s dark=%s",
        sample.r,
        sample.g,
        sample.b,
        sample.dominant_channel,
        sample.is_dark,
    )
    return sample


def to_data_url(content: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type or 'application/octet-stream'};base64,{encoded}"


def _to_webp(img: Image.Image, max_size: tuple[int, int], quality: int) -> bytes:
    """Resize *img* to fit within *max_size* and encode as WebP."""
    resized = img.copy()
    resized.thumbnail(max_size, Image.LANCZOS)
    buf = io.BytesIO()
    resized.save(buf, format="WEBP", quality=quality, method=4)
    return buf.getvalue()


def history_image_data(content: bytes, content_type: Optional[str]) -> str:
    """Data URL of a thumbnail of *content* for the history record.

    Falls back to the original bytes when Pillow cannot process the image.
    """
    try:
        img = Image.open(io.BytesIO(content))
        img = ImageOps.exif_transpose(img)  # auto-orient
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.mode else "RGB")
        thumbnail = _to_webp(img, THUMBNAIL_MAX_SIZE, THUMBNAIL_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        logger.warning("Failed to build history thumbnail, storing original", exc_info=True)
        return to_data_url(content, content_type)
    return to_data_url(thumbnail, "image/webp")
