"""
Image ingress: decode and validate inbound image payloads.

Accepts raw base64 or a data URL ("data:image/jpeg;base64,...").
Validation happens before any storage write:
- decoded size must not exceed Config.MAX_IMAGE_SIZE_BYTES
- bytes must open as an image with Pillow
- pixel count must stay under Pillow's decompression bomb limit

HEIC/HEIF images are converted to JPEG so downstream vision
providers receive a format they all support.
"""

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from ..config import Config

logger = logging.getLogger(__name__)

# Register HEIF/HEIC opener with Pillow
register_heif_opener()

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*),(?P<data>.*)$", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")

# Pillow format -> (content type, file extension)
_FORMATS = {
    "JPEG": ("image/jpeg", "jpg"),
    "PNG": ("image/png", "png"),
    "WEBP": ("image/webp", "webp"),
    "GIF": ("image/gif", "gif"),
    "HEIF": ("image/heif", "heic"),
}


class ImageValidationError(ValueError):
    """Image payload is missing, oversized, or not a decodable image."""


@dataclass
class DecodedImage:
    """A validated image ready for upload."""
    data: bytes
    content_type: str
    extension: str
    width: int
    height: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def extract_base64_payload(image: str) -> str:
    """
    Strip an optional data-URL header and whitespace from an image string.

    Raises:
        ImageValidationError: empty input or a data URL that is not base64
    """
    if not image or not isinstance(image, str):
        raise ImageValidationError("No image provided")

    payload = image.strip()
    if payload.startswith("data:"):
        match = _DATA_URL_RE.match(payload)
        if not match or ";base64" not in (match.group("params") or ""):
            raise ImageValidationError(
                "Invalid image data format. Expected base64 string or data URL"
            )
        payload = match.group("data")

    payload = _WHITESPACE_RE.sub("", payload)
    if not payload:
        raise ImageValidationError("No image provided")
    return payload


def convert_heic_to_jpeg(image_bytes: bytes) -> bytes:
    """Convert HEIC/HEIF bytes to JPEG."""
    img = Image.open(io.BytesIO(image_bytes))

    # Convert to RGB (HEIC may have alpha channel)
    if img.mode in ("RGBA", "P", "LA"):
        img = img.convert("RGB")

    output = io.BytesIO()
    img.save(output, format="JPEG", quality=90)
    return output.getvalue()


def decode_image(image: str, max_bytes: Optional[int] = None) -> DecodedImage:
    """
    Decode and validate an inbound image payload.

    Args:
        image: Base64 string, optionally data-URL prefixed
        max_bytes: Size ceiling for decoded bytes (inclusive).
                   Defaults to Config.MAX_IMAGE_SIZE_BYTES.

    Returns:
        DecodedImage with bytes, content type and dimensions

    Raises:
        ImageValidationError: on missing, oversized, or malformed input
    """
    if max_bytes is None:
        max_bytes = Config.MAX_IMAGE_SIZE_BYTES

    payload = extract_base64_payload(image)

    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageValidationError(
            "Invalid image data format. Expected base64 string or data URL"
        ) from e

    if len(image_bytes) > max_bytes:
        raise ImageValidationError(
            f"Image too large. Maximum size is {Config.MAX_IMAGE_SIZE_MB}MB."
        )

    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.verify()
    except Image.DecompressionBombError as e:
        raise ImageValidationError("Image dimensions too large") from e
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageValidationError("Invalid image format") from e

    image_format = (img.format or "").upper()
    if image_format not in _FORMATS:
        raise ImageValidationError(f"Unsupported image format: {img.format or 'unknown'}")

    width, height = img.size
    content_type, extension = _FORMATS[image_format]

    if image_format == "HEIF":
        image_bytes = convert_heic_to_jpeg(image_bytes)
        content_type, extension = _FORMATS["JPEG"]
        logger.info(f"Converted HEIC image to JPEG ({len(image_bytes)} bytes)")

    return DecodedImage(
        data=image_bytes,
        content_type=content_type,
        extension=extension,
        width=width,
        height=height,
    )


def blob_key_for_job(job_id: str, image: DecodedImage) -> str:
    """Object key for a job's uploaded image."""
    return f"uploads/{job_id}.{image.extension}"
