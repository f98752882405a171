import logging
from dataclasses import dataclass

from sqlalchemy import and_, or_, select

from familyhub.database import Database
from familyhub.errors import Forbidden, NotFound, ValidationError
from familyhub.models.document import DEFAULT_CATEGORY, Document
from familyhub.models.user import User

logger = logging.getLogger(__name__)

MAX_CATEGORY_LENGTH = 64


@dataclass
class DocumentView:
    """A document plus the owner fields list screens show next to it."""

    document: Document
    owner_name: str
    owner_relationship: str


def _clean_category(category: str | None) -> str:
    cleaned = (category or "").strip() or DEFAULT_CATEGORY
    if len(cleaned) > MAX_CATEGORY_LENGTH:
        raise ValidationError("Category is too long")
    return cleaned


class DocumentRegistry:
    """
    Document metadata and who may see it.

    Owners always see their own documents. Other users see a document only
    when they are in the owner's family and the owner marked it shared.
    """

    def __init__(self, db: Database):
        self.db = db

    # ============================================================
    # RECORD
    # ============================================================

    def record_document(
        self,
        owner_id: str,
        blob_key: str,
        original_name: str,
        size: int,
        content_type: str,
        category: str | None = None,
        shared: bool = False,
    ) -> Document:
        doc = Document(
            user_id=owner_id,
            blob_key=blob_key,
            original_filename=original_name,
            file_size=size,
            file_type=content_type,
            category=_clean_category(category),
            is_shared=bool(shared),
        )
        with self.db.session_scope() as s:
            if s.get(User, owner_id) is None:
                raise NotFound("User not found")
            s.add(doc)

        logger.info("Recorded document %s for user %s", doc.id, owner_id)
        return doc

    def get_document(self, doc_id: str) -> Document:
        with self.db.session_scope() as s:
            doc = s.get(Document, doc_id)
        if doc is None:
            raise NotFound("Document not found")
        return doc

    # ============================================================
    # QUERIES
    # ============================================================

    def list_own(self, user_id: str) -> list[Document]:
        with self.db.session_scope() as s:
            return list(
                s.scalars(
                    select(Document)
                    .where(Document.user_id == user_id)
                    .order_by(Document.upload_date.desc())
                ).all()
            )

    def list_visible_to(self, user_id: str) -> list[DocumentView]:
        with self.db.session_scope() as s:
            viewer = s.get(User, user_id)
            if viewer is None:
                raise NotFound("User not found")

            rows = s.execute(
                select(Document, User.full_name, User.relationship)
                .join(User, Document.user_id == User.id)
                .where(
                    or_(
                        Document.user_id == viewer.id,
                        and_(
                            User.family_id == viewer.family_id,
                            Document.is_shared.is_(True),
                        ),
                    )
                )
                .order_by(Document.upload_date.desc())
            ).all()

        return [DocumentView(doc, name, rel) for doc, name, rel in rows]

    def list_shared_in_family(self, family_id: str) -> list[DocumentView]:
        with self.db.session_scope() as s:
            rows = s.execute(
                select(Document, User.full_name, User.relationship)
                .join(User, Document.user_id == User.id)
                .where(
                    User.family_id == family_id,
                    Document.is_shared.is_(True),
                )
                .order_by(Document.upload_date.desc())
            ).all()

        return [DocumentView(doc, name, rel) for doc, name, rel in rows]

    def list_for_viewer(self, viewer_id: str, owner_id: str) -> list[Document]:
        """
        One member's documents as seen by another: everything when viewing
        yourself, shared ones within the family, nothing across families.
        """
        if viewer_id == owner_id:
            return self.list_own(owner_id)

        with self.db.session_scope() as s:
            viewer = s.get(User, viewer_id)
            owner = s.get(User, owner_id)
            if viewer is None or owner is None:
                raise NotFound("User not found")
            if viewer.family_id != owner.family_id:
                raise Forbidden("Not a member of this family")

            return list(
                s.scalars(
                    select(Document)
                    .where(Document.user_id == owner_id, Document.is_shared.is_(True))
                    .order_by(Document.upload_date.desc())
                ).all()
            )

    # ============================================================
    # SHARING
    # ============================================================

    def set_sharing(self, doc_id: str, requester_id: str, shared: bool) -> Document:
        """
        Only the owner may change sharing. Family admins get no override.
        """
        with self.db.session_scope() as s:
            doc = s.get(Document, doc_id)
            if doc is None:
                raise NotFound("Document not found")
            if doc.user_id != requester_id:
                raise Forbidden("Only the owner can change sharing")

            doc.is_shared = bool(shared)

        logger.info("Document %s sharing set to %s", doc_id, bool(shared))
        return doc
