import hashlib
import threading
from io import BytesIO

import pytest

from quillpress.adapters.local_storage import LocalAssetStorage
from quillpress.api.deps import Settings
from quillpress.ports.storage import AssetRejectedError


@pytest.fixture
def storage(tmp_path):
    return LocalAssetStorage(tmp_path, base_url="/uploads/", max_bytes=1024)


def test_put_is_content_addressed(storage, tmp_path):
    data = b"\x89PNG fake"
    sha = hashlib.sha256(data).hexdigest()

    stored = storage.put("Photo.PNG", data, "image/png")

    assert stored.url == f"/uploads/{sha[:2]}/{sha}.png"
    assert stored.size == len(data)
    assert stored.mime_type == "image/png"
    assert (tmp_path / sha[:2] / f"{sha}.png").read_bytes() == data


def test_same_bytes_same_url(storage):
    first = storage.put("a.jpg", b"same", "image/jpeg")
    second = storage.put("b.jpg", BytesIO(b"same"), "image/jpeg")
    assert first.url == second.url


def test_filename_path_is_ignored(storage, tmp_path):
    stored = storage.put("../../etc/passwd", b"data", "image/png")
    assert ".." not in stored.url
    assert all(p.is_relative_to(tmp_path) for p in tmp_path.rglob("*"))


def test_empty_upload_rejected(storage):
    with pytest.raises(AssetRejectedError):
        storage.put("a.png", b"", "image/png")


def test_oversize_upload_rejected(storage):
    with pytest.raises(AssetRejectedError):
        storage.put("a.png", b"x" * 2048, "image/png")


def test_concurrent_uploads_of_same_bytes(storage, tmp_path):
    data = b"shared image bytes"
    workers = 8
    barrier = threading.Barrier(workers)
    urls, errors = [], []

    def upload(i):
        barrier.wait()
        try:
            urls.append(storage.put(f"copy{i}.png", data, "image/png").url)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=upload, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(urls)) == 1
    files = [p for p in tmp_path.rglob("*") if p.is_file()]
    assert len(files) == 1
    assert files[0].read_bytes() == data


def test_settings_place_uploads_under_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("QUILL_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("QUILL_UPLOADS_DIR", raising=False)
    assert Settings().uploads_dir == tmp_path / "uploads"

    monkeypatch.setenv("QUILL_UPLOADS_DIR", str(tmp_path / "elsewhere"))
    assert Settings().uploads_dir == tmp_path / "elsewhere"
