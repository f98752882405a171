import io
import threading

import pytest

from familyhub import storage as storage_module
from familyhub.errors import InternalError, NotFound, TooLarge, UnsupportedType
from familyhub.storage import (
    CHUNK_SIZE,
    LocalBlobStore,
    SupabaseBlobStore,
    is_valid_key,
    make_blob_key,
    resolve_content_type,
    safe_filename,
    storage_from_settings,
)


@pytest.fixture()
def store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs", max_size=1024 * 1024)


def _read_all(chunks):
    return b"".join(chunks)


def test_put_then_get_is_byte_identical(store):
    payload = bytes(range(256)) * (3 * CHUNK_SIZE // 256 + 7)
    info = store.put(io.BytesIO(payload), "report.pdf", "application/pdf")

    assert info.size == len(payload)
    assert info.content_type == "application/pdf"
    assert info.original_name == "report.pdf"
    assert info.key.endswith("_report.pdf")

    got_info, chunks = store.get(info.key)
    assert got_info == info
    assert _read_all(chunks) == payload


def test_get_unknown_key(store):
    with pytest.raises(NotFound):
        store.get("1700000000000_deadbeef_missing.pdf")


@pytest.mark.parametrize("key", ["../etc/passwd", "..", "", "a/b.pdf", ".hidden"])
def test_get_rejects_path_like_keys(store, key):
    with pytest.raises(NotFound):
        store.get(key)


def test_unsupported_type_writes_nothing(store):
    with pytest.raises(UnsupportedType):
        store.put(io.BytesIO(b"#!/bin/sh"), "run.sh", "text/x-shellscript")

    # Extension and content type must agree
    with pytest.raises(UnsupportedType):
        store.put(io.BytesIO(b"%PDF"), "photo.jpg", "application/pdf")

    assert list(store.objects.iterdir()) == []
    assert list(store.incoming.iterdir()) == []


def test_too_large_is_discarded(store):
    with pytest.raises(TooLarge):
        store.put(io.BytesIO(b"x" * (store.max_size + 1)), "big.png", "image/png")

    assert list(store.objects.iterdir()) == []
    assert list(store.meta.iterdir()) == []
    assert list(store.incoming.iterdir()) == []


def test_exactly_max_size_is_accepted(store):
    info = store.put(io.BytesIO(b"x" * store.max_size), "edge.png", "image/png")
    assert info.size == store.max_size


def test_delete(store):
    info = store.put(io.BytesIO(b"hello"), "a.gif", "image/gif")
    assert store.exists(info.key)

    store.delete(info.key)
    assert not store.exists(info.key)
    with pytest.raises(NotFound):
        store.get(info.key)


def test_concurrent_same_name_puts_get_distinct_keys(store):
    keys = []
    lock = threading.Lock()

    def put(i):
        info = store.put(io.BytesIO(f"copy {i}".encode()), "scan.png", "image/png")
        with lock:
            keys.append(info.key)

    threads = [threading.Thread(target=put, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(keys)) == 8
    contents = {_read_all(store.get(k)[1]) for k in keys}
    assert contents == {f"copy {i}".encode() for i in range(8)}


def test_resolve_content_type():
    assert resolve_content_type("a.JPG", "image/jpeg") == "image/jpeg"
    assert resolve_content_type("a.jpg", "image/jpg") == "image/jpeg"
    assert resolve_content_type("a.docx", None) == (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )
    assert resolve_content_type("a.doc", "application/octet-stream") == "application/msword"

    with pytest.raises(UnsupportedType):
        resolve_content_type("noext", None)


def test_keys_are_safe_and_unique():
    a = make_blob_key("../../My Report (final).pdf")
    b = make_blob_key("../../My Report (final).pdf")

    assert a != b
    assert is_valid_key(a)
    assert a.endswith("_My_Report_final_.pdf")
    assert safe_filename("") == "file"


# ==========================================================
# SUPABASE BACKEND
# ==========================================================

class StorageApiError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


class FakeBucket:
    def __init__(self):
        self.uploads = []
        self.removed = []
        self.signed_error = None
        self.remove_error = None

    def upload(self, path, file, options):
        with open(file, "rb") as handle:
            self.uploads.append((path, handle.read(), options))

    def create_signed_url(self, path, expires_in):
        if self.signed_error:
            raise self.signed_error
        return {"signedURL": f"https://storage.test/signed/{path}"}

    def remove(self, paths):
        if self.remove_error:
            raise self.remove_error
        self.removed.extend(paths)

    def list(self, folder, options):
        return [{"name": path} for path, _, _ in self.uploads]


class FakeStorage:
    def __init__(self, bucket):
        self.bucket = bucket
        self.names = []

    def from_(self, name):
        self.names.append(name)
        return self.bucket


class FakeClient:
    def __init__(self, bucket):
        self.storage = FakeStorage(bucket)


class FakeResponse:
    def __init__(self, status_code, body=b"", headers=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.closed = False

    def iter_content(self, chunk_size):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def close(self):
        self.closed = True


@pytest.fixture()
def bucket():
    return FakeBucket()


@pytest.fixture()
def supabase_store(bucket):
    return SupabaseBlobStore(FakeClient(bucket), "media", max_size=1024)


def test_supabase_put_uploads_with_content_type(supabase_store, bucket):
    info = supabase_store.put(io.BytesIO(b"%PDF-1.4"), "report.pdf", "application/pdf")

    assert len(bucket.uploads) == 1
    path, body, options = bucket.uploads[0]
    assert path == info.key
    assert body == b"%PDF-1.4"
    assert options == {"content-type": "application/pdf", "upsert": "false"}
    assert info.size == 8
    assert info.original_name == "report.pdf"
    assert supabase_store.client.storage.names == ["media"]


def test_supabase_put_too_large_never_uploads(supabase_store, bucket):
    with pytest.raises(TooLarge):
        supabase_store.put(io.BytesIO(b"x" * 1025), "big.png", "image/png")
    with pytest.raises(UnsupportedType):
        supabase_store.put(io.BytesIO(b"MZ"), "run.exe", None)
    assert bucket.uploads == []


def test_supabase_get_streams_signed_url(supabase_store, monkeypatch):
    payload = b"z" * (CHUNK_SIZE + 10)
    response = FakeResponse(200, payload, {"content-type": "image/png", "content-length": str(len(payload))})
    requested = []

    def fake_get(url, stream, timeout):
        requested.append((url, stream))
        return response

    monkeypatch.setattr(storage_module.requests, "get", fake_get)

    key = make_blob_key("photo.png")
    info, chunks = supabase_store.get(key)
    parts = list(chunks)

    assert requested == [(f"https://storage.test/signed/{key}", True)]
    assert info.content_type == "image/png"
    assert info.size == len(payload)
    assert info.original_name == "photo.png"
    assert [len(p) for p in parts] == [CHUNK_SIZE, 10]
    assert response.closed


@pytest.mark.parametrize("status, error", [(404, NotFound), (400, NotFound), (503, InternalError)])
def test_supabase_get_maps_download_status(supabase_store, monkeypatch, status, error):
    response = FakeResponse(status)
    monkeypatch.setattr(storage_module.requests, "get", lambda url, stream, timeout: response)

    with pytest.raises(error):
        supabase_store.get(make_blob_key("a.pdf"))
    assert response.closed


def test_supabase_get_signed_url_failures(supabase_store, bucket):
    bucket.signed_error = StorageApiError("Object not found", "404")
    with pytest.raises(NotFound):
        supabase_store.get(make_blob_key("a.pdf"))

    # An outage is a server error, not a missing file
    bucket.signed_error = ConnectionError("bucket unreachable")
    with pytest.raises(InternalError):
        supabase_store.get(make_blob_key("a.pdf"))


def test_supabase_delete_logs_and_swallows_errors(supabase_store, bucket):
    supabase_store.delete("k1")
    assert bucket.removed == ["k1"]

    bucket.remove_error = RuntimeError("boom")
    supabase_store.delete("k2")
    assert bucket.removed == ["k1"]


def test_supabase_exists(supabase_store):
    info = supabase_store.put(io.BytesIO(b"GIF89a"), "a.gif", "image/gif")
    assert supabase_store.exists(info.key)
    assert not supabase_store.exists("1700000000000_abc_other.gif")


def test_storage_from_settings_supabase(monkeypatch, bucket):
    import supabase

    created = []

    def fake_create_client(url, key):
        created.append((url, key))
        return FakeClient(bucket)

    monkeypatch.setattr(supabase, "create_client", fake_create_client)

    class StubSettings:
        STORAGE_BACKEND = "supabase"
        SUPABASE_URL = "https://project.supabase.test"
        SUPABASE_KEY = "service-key"
        SUPABASE_BUCKET = "family-media"
        MAX_UPLOAD_BYTES = 2048

    store = storage_from_settings(StubSettings())

    assert isinstance(store, SupabaseBlobStore)
    assert created == [("https://project.supabase.test", "service-key")]
    assert store.bucket == "family-media"
    assert store.max_size == 2048


def test_storage_from_settings_rejects_unknown_backend():
    class StubSettings:
        STORAGE_BACKEND = "ftp"

    with pytest.raises(ValueError):
        storage_from_settings(StubSettings())
