from fastapi.testclient import TestClient

from secure_upload.main import app

client = TestClient(app)


def upload(name, data, mime="text/plain"):
    response = client.post("/upload", files={"file": (name, data, mime)})
    assert response.status_code == 200
    return response.json()["file"]


def test_download_uploaded_file():
    info = upload("notes.txt", b"hello world")

    response = client.get(info["path"])

    assert response.status_code == 200
    assert response.content == b"hello world"


def test_download_uses_stored_name_as_is(upload_dir):
    (upload_dir / "report_0123456789abcdef.pdf").write_bytes(b"%PDF-1.4 fake content")

    response = client.get("/uploads/report_0123456789abcdef.pdf")

    assert response.status_code == 200
    assert b"%PDF-1.4" in response.content


def test_download_not_found():
    response = client.get("/uploads/missing_0123456789abcdef.txt")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "File not found"}


def test_download_rejects_hidden_file(upload_dir):
    (upload_dir / ".env").write_text("SECRET=1")

    response = client.get("/uploads/.env")

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Access denied"}


def test_download_rejects_encoded_traversal():
    response = client.get("/uploads/..%2F..%2Fetc%2Fpasswd")
    assert response.status_code in (403, 404)
    assert b"root:" not in response.content


def test_download_rejects_symlink_outside_upload_dir(upload_dir, tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret")
    (upload_dir / "link_0123456789abcdef.txt").symlink_to(secret)

    response = client.get("/uploads/link_0123456789abcdef.txt")

    assert response.status_code == 403
    assert b"top secret" not in response.content


def test_list_files_empty():
    response = client.get("/api/files")
    assert response.status_code == 200
    assert response.json() == {"success": True, "files": []}


def test_list_files_after_uploads():
    first = upload("a.txt", b"a")
    second = upload("photo.png", b"\x89PNG\r\n\x1a\n", "image/png")

    response = client.get("/api/files")

    assert response.status_code == 200
    files = {f["filename"]: f for f in response.json()["files"]}
    assert set(files) == {first["filename"], second["filename"]}
    assert files[first["filename"]]["size"] == 1
    assert files[second["filename"]]["size"] == 8
    assert all(f["uploaded"] for f in files.values())
