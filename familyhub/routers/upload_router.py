# familyhub/routers/upload_router.py

from typing import AsyncIterator, Literal

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from familyhub.auth.tokens import SessionClaims
from familyhub.core.access import get_current_session, get_services
from familyhub.errors import TooLarge, ValidationError
from familyhub.schemas.document_schema import DocumentOut, UploadOut
from familyhub.services import Services
from familyhub.storage import safe_filename

router = APIRouter(prefix="/api", tags=["Uploads"])

# Multipart framing plus the small form fields that travel with the file
MULTIPART_ALLOWANCE = 64 * 1024

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off", "")


# --------------------------------------------------
# BOUNDED BODY
# --------------------------------------------------
def _too_large(max_size: int) -> TooLarge:
    return TooLarge(f"File too large (max {max_size // (1024 * 1024)}MB)")


async def bounded_stream(stream: AsyncIterator[bytes], limit: int, max_size: int) -> AsyncIterator[bytes]:
    """
    Passes the request body through until more than `limit` bytes have
    arrived, then stops pulling from the client.
    """
    received = 0
    async for chunk in stream:
        received += len(chunk)
        if received > limit:
            raise _too_large(max_size)
        yield chunk


async def read_upload_form(request: Request, max_size: int) -> FormData:
    """
    Parses the multipart body as it streams in. A declared Content-Length
    over the limit is refused before reading; without one, reading stops
    at the limit. The blob store then enforces the exact per-file cap.
    """
    limit = max_size + MULTIPART_ALLOWANCE

    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            declared_size = int(declared)
        except ValueError:
            raise ValidationError("Invalid Content-Length") from None
        if declared_size > limit:
            raise _too_large(max_size)

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data") or "boundary=" not in content_type:
        raise ValidationError("Expected a multipart/form-data upload")

    parser = MultiPartParser(request.headers, bounded_stream(request.stream(), limit, max_size))
    try:
        return await parser.parse()
    except MultiPartException as exc:
        raise ValidationError(exc.message) from exc


def _form_bool(value, field: str) -> bool:
    text = str(value if value is not None else "").strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"{field} must be true or false")


# --------------------------------------------------
# UPLOAD (document | photo)
# --------------------------------------------------
@router.post("/upload/{kind}", response_model=UploadOut)
async def upload_file(
    kind: Literal["document", "photo"],
    request: Request,
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    form = await read_upload_form(request, services.blobs.max_size)
    try:
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise ValidationError("File is required")

        if kind == "document":
            result = await run_in_threadpool(
                services.uploads.upload_document,
                claims.user_id,
                file.file,
                file.filename or "",
                content_type=file.content_type,
                category=form.get("category") or None,
                shared=_form_bool(form.get("is_shared"), "is_shared"),
            )
        else:
            result = await run_in_threadpool(
                services.uploads.upload_photo,
                claims.user_id,
                file.file,
                file.filename or "",
                content_type=file.content_type,
                photo_type=form.get("photo_type") or "gallery",
            )
    finally:
        await form.close()

    return UploadOut(
        blob_key=result.blob.key,
        filename=result.blob.original_name,
        content_type=result.blob.content_type,
        size=result.blob.size,
        document=DocumentOut.model_validate(result.document) if result.document else None,
        gallery_position=result.position,
    )


# --------------------------------------------------
# FETCH FILE (key is the capability; no session)
# --------------------------------------------------
@router.get("/files/{key}")
def fetch_file(
    key: str,
    services: Services = Depends(get_services),
):
    info, chunks = services.blobs.get(key)

    headers = {"Content-Disposition": f'inline; filename="{safe_filename(info.original_name)}"'}
    if info.size:
        headers["Content-Length"] = str(info.size)

    return StreamingResponse(chunks, media_type=info.content_type, headers=headers)
