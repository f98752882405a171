import logging
from dataclasses import dataclass
from typing import BinaryIO

from familyhub.errors import GalleryFull, ValidationError
from familyhub.models.document import Document
from familyhub.models.gallery_photo import MAX_GALLERY_PHOTOS
from familyhub.services.document_service import DocumentRegistry
from familyhub.services.identity_service import IdentityStore
from familyhub.storage import IMAGE_TYPES, BlobInfo, BlobStore, resolve_content_type

logger = logging.getLogger(__name__)

PHOTO_TYPES = ("profile", "gallery")


@dataclass
class UploadResult:
    blob: BlobInfo
    document: Document | None = None
    # Gallery slot, for gallery photos
    position: int | None = None


class UploadService:
    """
    Stores a blob and then writes whatever record points at it. The blob is
    durable before the record exists; if the record cannot be written the
    blob is deleted again.
    """

    def __init__(self, blobs: BlobStore, documents: DocumentRegistry, identity: IdentityStore):
        self.blobs = blobs
        self.documents = documents
        self.identity = identity

    # ============================================================
    # DOCUMENT
    # ============================================================

    def upload_document(
        self,
        owner_id: str,
        stream: BinaryIO,
        filename: str,
        content_type: str | None = None,
        category: str | None = None,
        shared: bool = False,
    ) -> UploadResult:
        # Fail on unknown owners before storing anything
        self.identity.get_user(owner_id)

        blob = self.blobs.put(stream, filename, content_type)
        try:
            doc = self.documents.record_document(
                owner_id=owner_id,
                blob_key=blob.key,
                original_name=blob.original_name,
                size=blob.size,
                content_type=blob.content_type,
                category=category,
                shared=shared,
            )
        except Exception:
            logger.warning("Recording document failed; removing blob %s", blob.key)
            self.blobs.delete(blob.key)
            raise

        return UploadResult(blob=blob, document=doc)

    # ============================================================
    # PHOTO
    # ============================================================

    def upload_photo(
        self,
        user_id: str,
        stream: BinaryIO,
        filename: str,
        content_type: str | None = None,
        photo_type: str = "gallery",
    ) -> UploadResult:
        if photo_type not in PHOTO_TYPES:
            raise ValidationError("photo_type must be 'profile' or 'gallery'")

        # Photos are images only
        resolve_content_type(filename, content_type, allowed=IMAGE_TYPES)

        self.identity.get_user(user_id)
        if photo_type == "gallery" and self.identity.gallery_count(user_id) >= MAX_GALLERY_PHOTOS:
            raise GalleryFull()

        blob = self.blobs.put(stream, filename, content_type)
        try:
            if photo_type == "profile":
                self.identity.set_profile_photo(user_id, blob.key)
                return UploadResult(blob=blob)

            position = self.identity.append_gallery_photo(user_id, blob.key)
            return UploadResult(blob=blob, position=position)
        except Exception:
            logger.warning("Attaching photo failed; removing blob %s", blob.key)
            self.blobs.delete(blob.key)
            raise
