"""Shared test fixtures and configuration for backend tests."""
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from uploader.config import reset_config
from uploader.main import app
from uploader.receiver.service import UploadStorageService
from uploader.selector.manager import manager


def _reset_state() -> None:
    reset_config()
    UploadStorageService.reset_instance()
    manager.clear()
    manager.transport = None


@pytest.fixture(autouse=True)
def isolated_workdir(tmp_path, monkeypatch):
    """Run every test in an empty working directory with default settings.

    No uploader.settings.yaml is present, so the defaults apply, and the
    relative ``uploads/`` directory resolves inside tmp_path.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("UPLOAD_URL", raising=False)
    _reset_state()
    yield tmp_path
    _reset_state()


@pytest.fixture
def upload_dir(isolated_workdir):
    """Create the ``uploads/`` directory the receiver expects to exist."""
    path = isolated_workdir / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)


def make_image(width: int = 8, height: int = 6, fmt: str = "PNG", color=(200, 30, 30, 255)) -> bytes:
    """Encode a solid-colour image of the given size."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    im = Image.new(mode, (width, height), color if mode == "RGBA" else color[:3])
    out = BytesIO()
    im.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image(fmt="JPEG")
