"""
Pytest configuration for the Wine Lens tests.
"""

import base64
import io
import os
import tempfile

import pytest
from PIL import Image

# Keep the app's default job database and upload directory out of the source tree
_TEST_ROOT = tempfile.mkdtemp(prefix="winelens-tests-")
os.environ.setdefault("DATABASE_PATH", os.path.join(_TEST_ROOT, "jobs.db"))
os.environ.setdefault("LOCAL_UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("USE_MOCKS", "true")


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )

    # Mark the service as ready for tests (bypasses warmup middleware)
    from main import set_ready
    set_ready(True)


def make_image_bytes(fmt: str = "JPEG", size=(16, 12), color=(120, 20, 40)) -> bytes:
    """Encode a small solid-color image."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    output = io.BytesIO()
    Image.new(mode, size, fill).save(output, format=fmt)
    return output.getvalue()


def make_image_b64(fmt: str = "JPEG", data_url: bool = False) -> str:
    """Base64 image payload, optionally as a data URL."""
    encoded = base64.b64encode(make_image_bytes(fmt)).decode("ascii")
    if data_url:
        return f"data:image/{fmt.lower()};base64,{encoded}"
    return encoded


@pytest.fixture
def jpeg_b64():
    return make_image_b64("JPEG")


@pytest.fixture
def job_store(tmp_path):
    """JobStore backed by a fresh migrated database."""
    from winelens.services.job_store import JobStore

    store = JobStore(db_path=str(tmp_path / "jobs.db"))
    yield store
    store.close()


@pytest.fixture
def blob_storage(tmp_path):
    """Local blob storage under tmp_path."""
    from winelens.services.blob_storage import LocalBlobStorage

    return LocalBlobStorage(str(tmp_path / "uploads"), "http://testserver")
