"""
Tests for image ingress: payload decoding, validation and blob keys.
"""

import base64

import pytest
from PIL import Image

from winelens.config import Config
from winelens.services.blob_storage import LocalBlobStorage
from winelens.services.image_ingress import (
    DecodedImage,
    ImageValidationError,
    blob_key_for_job,
    convert_heic_to_jpeg,
    decode_image,
    extract_base64_payload,
)

from conftest import make_image_b64, make_image_bytes


class TestExtractBase64Payload:
    """Tests for data-URL and whitespace handling."""

    def test_raw_base64_passes_through(self):
        assert extract_base64_payload("QUJD") == "QUJD"

    def test_data_url_header_stripped(self):
        assert extract_base64_payload("data:image/jpeg;base64,QUJD") == "QUJD"

    def test_whitespace_removed(self):
        assert extract_base64_payload("  QU\nJD \r\n") == "QUJD"

    def test_empty_rejected(self):
        with pytest.raises(ImageValidationError, match="No image provided"):
            extract_base64_payload("")

    def test_none_rejected(self):
        with pytest.raises(ImageValidationError):
            extract_base64_payload(None)

    def test_non_base64_data_url_rejected(self):
        with pytest.raises(ImageValidationError, match="Invalid image data format"):
            extract_base64_payload("data:image/png,rawbytes")


class TestDecodeImage:
    """Tests for decode_image validation."""

    def test_jpeg(self):
        image = decode_image(make_image_b64("JPEG"))

        assert isinstance(image, DecodedImage)
        assert image.content_type == "image/jpeg"
        assert image.extension == "jpg"
        assert (image.width, image.height) == (16, 12)
        assert image.size_bytes == len(image.data)

    def test_png_data_url(self):
        image = decode_image(make_image_b64("PNG", data_url=True))

        assert image.content_type == "image/png"
        assert image.extension == "png"

    def test_invalid_base64_rejected(self):
        with pytest.raises(ImageValidationError, match="Invalid image data format"):
            decode_image("not base64 at all!!")

    def test_non_image_bytes_rejected(self):
        payload = base64.b64encode(b"definitely not an image").decode()
        with pytest.raises(ImageValidationError, match="Invalid image format"):
            decode_image(payload)

    def test_oversized_dimensions_rejected(self, monkeypatch):
        """Pixel counts past Pillow's bomb limit are a validation error, not a crash."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 50)

        with pytest.raises(ImageValidationError, match="Image dimensions too large"):
            decode_image(make_image_b64("PNG"))

    def test_exactly_at_ceiling_accepted(self):
        """Decoded size equal to the 10MB ceiling is allowed."""
        jpeg = make_image_bytes("JPEG")
        padded = jpeg + b"\x00" * (Config.MAX_IMAGE_SIZE_BYTES - len(jpeg))
        assert len(padded) == 10 * 1024 * 1024

        image = decode_image(base64.b64encode(padded).decode())
        assert image.size_bytes == Config.MAX_IMAGE_SIZE_BYTES

    def test_one_byte_over_ceiling_rejected(self):
        jpeg = make_image_bytes("JPEG")
        padded = jpeg + b"\x00" * (Config.MAX_IMAGE_SIZE_BYTES - len(jpeg) + 1)

        with pytest.raises(ImageValidationError, match="too large"):
            decode_image(base64.b64encode(padded).decode())

    def test_custom_ceiling(self):
        png = make_image_bytes("PNG")
        payload = base64.b64encode(png).decode()

        assert decode_image(payload, max_bytes=len(png)).size_bytes == len(png)
        with pytest.raises(ImageValidationError):
            decode_image(payload, max_bytes=len(png) - 1)


class TestHeicConversion:
    """Tests for the HEIC -> JPEG conversion helper."""

    def test_converts_alpha_image_to_jpeg(self):
        jpeg = convert_heic_to_jpeg(make_image_bytes("PNG"))
        assert jpeg[:2] == b"\xff\xd8"


class TestBlobKeys:
    """Tests for blob naming and local storage."""

    def test_key_derived_from_job_id(self):
        image = decode_image(make_image_b64("PNG"))
        assert blob_key_for_job("job-123", image) == "uploads/job-123.png"

    @pytest.mark.asyncio
    async def test_local_storage_writes_file_and_returns_url(self, tmp_path):
        storage = LocalBlobStorage(str(tmp_path), "http://localhost:8000/")

        url = await storage.upload("uploads/job-1.jpg", b"abc", "image/jpeg")

        assert url == "http://localhost:8000/uploads/job-1.jpg"
        assert (tmp_path / "job-1.jpg").read_bytes() == b"abc"
