import pytest

from secure_upload.config import settings
from secure_upload.limiter import RateLimiter
from secure_upload.main import app


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Point the service at an empty temporary upload directory."""
    directory = tmp_path / "uploads"
    directory.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture(autouse=True)
def rate_limiter():
    """Give every test a fresh in-memory limiter (10 uploads / 60s)."""
    limiter = RateLimiter(max_attempts=10, window_seconds=60)
    app.state.rate_limiter = limiter
    yield limiter
    limiter.reset()
