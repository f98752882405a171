from dataclasses import dataclass

from familyhub.auth.passwords import CredentialVerifier
from familyhub.auth.tokens import TokenIssuer
from familyhub.config import Settings
from familyhub.database import Database
from familyhub.services.document_service import DocumentRegistry
from familyhub.services.identity_service import IdentityStore, MemberProfile
from familyhub.services.upload_service import UploadService
from familyhub.storage import BlobStore, storage_from_settings


@dataclass
class Services:
    """
    Every long-lived client, built once and passed around explicitly.
    """

    settings: Settings
    db: Database
    credentials: CredentialVerifier
    tokens: TokenIssuer
    identity: IdentityStore
    blobs: BlobStore
    documents: DocumentRegistry
    uploads: UploadService


def build_services(settings: Settings) -> Services:
    db = Database(settings.DATABASE_URL)
    credentials = CredentialVerifier(
        db,
        family_rounds=settings.FAMILY_PASSWORD_HASH_ROUNDS,
        user_rounds=settings.PASSWORD_HASH_ROUNDS,
    )
    tokens = TokenIssuer(
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    identity = IdentityStore(db, credentials)
    blobs = storage_from_settings(settings)
    documents = DocumentRegistry(db)
    uploads = UploadService(blobs, documents, identity)

    return Services(
        settings=settings,
        db=db,
        credentials=credentials,
        tokens=tokens,
        identity=identity,
        blobs=blobs,
        documents=documents,
        uploads=uploads,
    )


__all__ = [
    "Services",
    "build_services",
    "MemberProfile",
    "IdentityStore",
    "DocumentRegistry",
    "UploadService",
]
