import importlib
from fastapi.testclient import TestClient


def make_client():
    api = importlib.reload(importlib.import_module("chatadmin.api"))
    return TestClient(api.app)


def test_upload_file_written_to_public_dir(tmp_path):
    client = make_client()
    resp = client.post(
        "/upload/file",
        files={"file": ("pic.png", b"\x89PNG data", "image/png")},
        data={"fileName": "avatar.png"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"url": "/avatar.png"}
    assert (tmp_path / "public" / "avatar.png").read_bytes() == b"\x89PNG data"


def test_upload_file_strips_directories(tmp_path):
    client = make_client()
    resp = client.post(
        "/upload/file",
        files={"file": ("x.txt", b"hi", "text/plain")},
        data={"fileName": "../../escape.txt"},
    )
    assert resp.json() == {"url": "/escape.txt"}
    assert (tmp_path / "public" / "escape.txt").exists()
    assert not (tmp_path / "escape.txt").exists()


def test_upload_rejected_when_object_storage_configured(monkeypatch):
    monkeypatch.setenv("QINIU_ACCESS_KEY", "ak")
    monkeypatch.setenv("QINIU_BUCKET", "bucket")
    monkeypatch.setenv("QINIU_URL_PREFIX", "https://cdn.example.com/")
    client = make_client()
    resp = client.post("/upload/file", files={"file": ("a.txt", b"a", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "UploadRejected"
