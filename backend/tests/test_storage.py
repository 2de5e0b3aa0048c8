import asyncio
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import UploadFile

from secure_upload.config import settings
from secure_upload.errors import FileTooLarge, IOFailure, NotFound, PathTraversalAttempt
from secure_upload.services.storage import LocalStorage, get_storage


def make_upload(data: bytes, filename: str = "notes.txt") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, size=len(data))


def test_store_writes_file(upload_dir):
    storage = LocalStorage(upload_dir)
    data = b"hello world" * 100

    stored = asyncio.run(storage.store("notes_0123456789abcdef.txt", make_upload(data), "text/plain"))

    assert stored.size == len(data)
    assert stored.mime_type == "text/plain"
    assert stored.relative_path == "/uploads/notes_0123456789abcdef.txt"
    assert (upload_dir / stored.stored_name).read_bytes() == data


def test_store_creates_missing_directory(tmp_path):
    storage = LocalStorage(tmp_path / "nested" / "uploads")
    stored = asyncio.run(storage.store("a_0123456789abcdef.txt", make_upload(b"x"), "text/plain"))
    assert (tmp_path / "nested" / "uploads" / stored.stored_name).exists()


def test_store_rejects_stream_over_limit_and_removes_partial_file(upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "CHUNK_SIZE", 4)
    storage = LocalStorage(upload_dir)

    with pytest.raises(FileTooLarge):
        asyncio.run(storage.store("big_0123456789abcdef.txt", make_upload(b"x" * 20), "text/plain", max_size=10))

    assert list(upload_dir.iterdir()) == []


def test_store_rechecks_size_after_write(upload_dir):
    storage = LocalStorage(upload_dir)
    fake_stat = AsyncMock(return_value=SimpleNamespace(st_size=11))

    with patch("secure_upload.services.storage.aiofiles.os.stat", fake_stat):
        with pytest.raises(FileTooLarge):
            asyncio.run(storage.store("a_0123456789abcdef.txt", make_upload(b"x" * 5), "text/plain", max_size=10))

    assert list(upload_dir.iterdir()) == []


def test_store_never_overwrites_existing_file(upload_dir):
    existing = upload_dir / "taken_0123456789abcdef.txt"
    existing.write_bytes(b"original")
    storage = LocalStorage(upload_dir)

    with pytest.raises(IOFailure):
        asyncio.run(storage.store(existing.name, make_upload(b"new"), "text/plain"))

    assert existing.read_bytes() == b"original"


def test_store_wraps_os_errors(upload_dir):
    storage = LocalStorage(upload_dir)
    with patch("secure_upload.services.storage.aiofiles.open", side_effect=OSError("disk full")):
        with pytest.raises(IOFailure):
            asyncio.run(storage.store("a_0123456789abcdef.txt", make_upload(b"x"), "text/plain"))


def test_resolve_existing_file(upload_dir):
    target = upload_dir / "report_0123456789abcdef.pdf"
    target.write_bytes(b"%PDF-1.4")
    assert LocalStorage(upload_dir).resolve(target.name) == target.resolve()


def test_resolve_missing_file(upload_dir):
    with pytest.raises(NotFound):
        LocalStorage(upload_dir).resolve("missing_0123456789abcdef.txt")


@pytest.mark.parametrize("name", ["../../etc/passwd", "..", ".", "", "/etc/passwd", "..\\secret.txt", ".env"])
def test_resolve_rejects_traversal(upload_dir, name):
    with pytest.raises(PathTraversalAttempt):
        LocalStorage(upload_dir).resolve(name)


def test_resolve_rejects_symlink_escaping_upload_dir(upload_dir, tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret")
    (upload_dir / "link_0123456789abcdef.txt").symlink_to(secret)

    with pytest.raises(PathTraversalAttempt):
        LocalStorage(upload_dir).resolve("link_0123456789abcdef.txt")


def test_resolve_does_not_resanitize_name(upload_dir):
    target = upload_dir / "report_0123456789abcdef.pdf"
    target.write_bytes(b"data")
    assert LocalStorage(upload_dir).resolve("report_0123456789abcdef.pdf").name == target.name


def test_list_files(upload_dir):
    (upload_dir / "b_0123456789abcdef.txt").write_bytes(b"bb")
    (upload_dir / "a_0123456789abcdef.png").write_bytes(b"a")
    (upload_dir / ".gitkeep").write_bytes(b"")
    (upload_dir / "subdir").mkdir()

    files = LocalStorage(upload_dir).list_files()

    assert [f.filename for f in files] == ["a_0123456789abcdef.png", "b_0123456789abcdef.txt"]
    assert [f.size for f in files] == [1, 2]
    assert all(f.uploaded.tzinfo is not None for f in files)


def test_list_files_unreadable_directory(tmp_path):
    storage = LocalStorage(tmp_path / "uploads")
    with patch.object(type(storage.root), "iterdir", side_effect=PermissionError("denied")):
        with pytest.raises(IOFailure):
            storage.list_files()


def test_storage_dependency_is_cached_on_app_state(upload_dir):
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    with patch.object(LocalStorage, "ensure_directory") as ensure_directory:
        first = get_storage(request)
        second = get_storage(request)

    assert first is second
    assert ensure_directory.call_count == 1


def test_storage_dependency_follows_upload_dir(upload_dir, tmp_path, monkeypatch):
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))
    first = get_storage(request)

    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "other"))
    second = get_storage(request)

    assert second is not first
    assert second.root == tmp_path / "other"
