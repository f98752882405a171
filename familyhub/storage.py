import json
import logging
import os
import re
import secrets
import tempfile
import time
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import BinaryIO

import requests

from familyhub.errors import InternalError, NotFound, TooLarge, UnsupportedType

logger = logging.getLogger(__name__)


# ==========================================================
# LIMITS
# ==========================================================
MAX_BLOB_SIZE = 10 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


# ==========================================================
# ALLOWED TYPES
# ==========================================================
IMAGE_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
}

DOCUMENT_TYPES = {
    "application/pdf": (".pdf",),
    "application/msword": (".doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (".docx",),
}

ALLOWED_TYPES = {**IMAGE_TYPES, **DOCUMENT_TYPES}

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class BlobInfo:
    key: str
    content_type: str
    size: int
    original_name: str


# ==========================================================
# HELPERS
# ==========================================================

def resolve_content_type(
    filename: str,
    content_type: str | None,
    allowed: dict[str, tuple[str, ...]] = ALLOWED_TYPES,
) -> str:
    """
    Both the extension and the declared content type must be on the
    allow-list and agree with each other. Returns the normalized type.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    ct = (content_type or "").split(";")[0].strip().lower()

    if not ct or ct == "application/octet-stream":
        ct = next((t for t, exts in allowed.items() if ext in exts), "")

    # image/jpg shows up from some clients
    if ct == "image/jpg":
        ct = "image/jpeg"

    if ct not in allowed or ext not in allowed[ct]:
        raise UnsupportedType(f"File type not allowed: {ext or 'no extension'} ({ct or 'unknown'})")
    return ct


def safe_filename(name: str | None) -> str:
    base = os.path.basename((name or "").replace("\\", "/"))
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:100] or "file"


def make_blob_key(suggested_name: str | None) -> str:
    """
    Upload time alone collides for same-millisecond uploads of the same
    name, and keys double as read capabilities, so 128 random bits go in.
    """
    millis = int(time.time() * 1000)
    return f"{millis}_{secrets.token_hex(16)}_{safe_filename(suggested_name)}"


def original_name_from_key(key: str) -> str:
    parts = key.split("_", 2)
    return parts[2] if len(parts) == 3 else key


def is_valid_key(key: str) -> bool:
    return bool(key) and bool(_KEY_PATTERN.match(key)) and ".." not in key


def copy_bounded(source: BinaryIO, target: BinaryIO, max_size: int) -> int:
    """
    Copies chunk by chunk, never holding more than CHUNK_SIZE in memory.
    Raises TooLarge as soon as the running total passes max_size.
    """
    total = 0
    while True:
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise TooLarge(f"File too large (max {max_size // (1024 * 1024)}MB)")
        target.write(chunk)
    return total


# ==========================================================
# STORAGE INTERFACE
# ==========================================================

class BlobStore:
    max_size: int = MAX_BLOB_SIZE

    def put(self, stream: BinaryIO, suggested_name: str, content_type: str | None = None) -> BlobInfo:
        raise NotImplementedError

    def get(self, key: str) -> tuple[BlobInfo, Iterator[bytes]]:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError


# ==========================================================
# LOCAL STORAGE
# ==========================================================

class LocalBlobStore(BlobStore):
    """
    Objects live under <root>/objects, metadata under <root>/meta. An
    object becomes visible only after it is fully written and fsynced.
    """

    def __init__(self, root: str | Path, max_size: int = MAX_BLOB_SIZE):
        self.root = Path(root)
        self.max_size = max_size
        self.objects = self.root / "objects"
        self.meta = self.root / "meta"
        self.incoming = self.root / "incoming"
        for folder in (self.objects, self.meta, self.incoming):
            folder.mkdir(parents=True, exist_ok=True)

    def _object_path(self, key: str) -> Path:
        return self.objects / key

    def _meta_path(self, key: str) -> Path:
        return self.meta / f"{key}.json"

    def put(self, stream: BinaryIO, suggested_name: str, content_type: str | None = None) -> BlobInfo:
        ct = resolve_content_type(suggested_name, content_type)
        key = make_blob_key(suggested_name)

        fd, tmp_name = tempfile.mkstemp(dir=self.incoming, prefix="upload_")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as buffer:
                size = copy_bounded(stream, buffer, self.max_size)
                buffer.flush()
                os.fsync(buffer.fileno())

            info = BlobInfo(
                key=key,
                content_type=ct,
                size=size,
                original_name=os.path.basename(suggested_name or "") or safe_filename(suggested_name),
            )
            self._meta_path(key).write_text(json.dumps(asdict(info)), encoding="utf-8")
            os.replace(tmp_path, self._object_path(key))
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            self._meta_path(key).unlink(missing_ok=True)
            logger.exception("Local blob write failed for %s", key)
            raise InternalError("Upload failed") from exc
        except Exception:
            tmp_path.unlink(missing_ok=True)
            self._meta_path(key).unlink(missing_ok=True)
            raise

        logger.info("Stored blob %s (%s bytes, %s)", key, size, ct)
        return info

    def get(self, key: str) -> tuple[BlobInfo, Iterator[bytes]]:
        if not is_valid_key(key):
            raise NotFound("File not found")

        path = self._object_path(key)
        meta_path = self._meta_path(key)
        if not path.is_file() or not meta_path.is_file():
            raise NotFound("File not found")

        info = BlobInfo(**json.loads(meta_path.read_text(encoding="utf-8")))
        handle = path.open("rb")
        return info, _iter_file(handle)

    def delete(self, key: str) -> None:
        if not is_valid_key(key):
            return
        self._object_path(key).unlink(missing_ok=True)
        self._meta_path(key).unlink(missing_ok=True)
        logger.info("Deleted blob %s", key)

    def exists(self, key: str) -> bool:
        return is_valid_key(key) and self._object_path(key).is_file()


def _iter_file(handle: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


# ==========================================================
# SUPABASE STORAGE
# ==========================================================

class SupabaseBlobStore(BlobStore):
    """
    Supabase Storage bucket. Uploads are spooled to a temp file first so
    the size cap is enforced before anything leaves the process; downloads
    stream from a short-lived signed URL.
    """

    SIGNED_URL_SECONDS = 60

    def __init__(self, client, bucket: str, max_size: int = MAX_BLOB_SIZE):
        self.client = client
        self.bucket = bucket
        self.max_size = max_size

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put(self, stream: BinaryIO, suggested_name: str, content_type: str | None = None) -> BlobInfo:
        ct = resolve_content_type(suggested_name, content_type)
        key = make_blob_key(suggested_name)

        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_path = Path(tmp_dir) / "upload"
            with tmp_path.open("wb") as buffer:
                size = copy_bounded(stream, buffer, self.max_size)

            try:
                self._bucket().upload(
                    key,
                    str(tmp_path),
                    {"content-type": ct, "upsert": "false"},
                )
            except Exception as exc:
                logger.exception("Supabase upload failed for %s", key)
                raise InternalError("Upload failed") from exc

        logger.info("Supabase upload OK: %s (%s bytes)", key, size)
        return BlobInfo(
            key=key,
            content_type=ct,
            size=size,
            original_name=os.path.basename(suggested_name or "") or safe_filename(suggested_name),
        )

    def get(self, key: str) -> tuple[BlobInfo, Iterator[bytes]]:
        if not is_valid_key(key):
            raise NotFound("File not found")

        try:
            signed = self._bucket().create_signed_url(key, self.SIGNED_URL_SECONDS)
        except Exception as exc:
            if _is_missing_object(exc):
                raise NotFound("File not found") from exc
            logger.exception("Supabase signed URL failed for %s", key)
            raise InternalError() from exc

        url = signed.get("signedURL") or signed.get("signedUrl")
        if not url:
            raise NotFound("File not found")

        try:
            response = requests.get(url, stream=True, timeout=30)
        except requests.RequestException as exc:
            logger.exception("Supabase download failed for %s", key)
            raise InternalError() from exc

        if response.status_code in (400, 404):
            response.close()
            raise NotFound("File not found")
        if response.status_code >= 300:
            response.close()
            logger.error("Supabase download failed for %s: HTTP %s", key, response.status_code)
            raise InternalError()

        info = BlobInfo(
            key=key,
            content_type=response.headers.get("content-type", "application/octet-stream"),
            size=int(response.headers.get("content-length") or 0),
            original_name=original_name_from_key(key),
        )

        def chunks() -> Iterator[bytes]:
            try:
                yield from response.iter_content(CHUNK_SIZE)
            finally:
                response.close()

        return info, chunks()

    def delete(self, key: str) -> None:
        try:
            self._bucket().remove([key])
            logger.info("Supabase delete OK: %s", key)
        except Exception:
            logger.exception("Supabase delete failed: %s", key)

    def exists(self, key: str) -> bool:
        """
        Only used to confirm compensation. An unreachable bucket is logged
        and reported as absent rather than raised.
        """
        folder, _, name = key.rpartition("/")
        try:
            entries = self._bucket().list(folder, {"search": name})
        except Exception:
            logger.exception("Supabase list failed for %s", key)
            return False
        return any(e.get("name") == name for e in entries or [])


def _is_missing_object(exc: Exception) -> bool:
    # storage3 reports a missing object as a 400 or 404 on its API error
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    return str(status) in ("400", "404")


# ==========================================================
# FACTORY
# ==========================================================

def storage_from_settings(settings) -> BlobStore:
    backend = settings.STORAGE_BACKEND
    if backend == "supabase":
        from supabase import create_client

        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        return SupabaseBlobStore(client, settings.SUPABASE_BUCKET, max_size=settings.MAX_UPLOAD_BYTES)

    if backend == "local":
        return LocalBlobStore(settings.LOCAL_MEDIA_PATH, max_size=settings.MAX_UPLOAD_BYTES)

    raise ValueError("Invalid STORAGE_BACKEND")
