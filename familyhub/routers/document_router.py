# familyhub/routers/document_router.py

from fastapi import APIRouter, Depends

from familyhub.auth.tokens import SessionClaims
from familyhub.core.access import get_current_session, get_services
from familyhub.models.document import DOCUMENT_CATEGORIES
from familyhub.schemas.document_schema import DocumentOut, SharingUpdate
from familyhub.services import Services
from familyhub.services.document_service import DocumentView

router = APIRouter(prefix="/api/documents", tags=["Documents"])


# ==========================================================
# Helpers
# ==========================================================

def document_view_out(view: DocumentView) -> DocumentOut:
    out = DocumentOut.model_validate(view.document)
    out.owner_name = view.owner_name
    out.owner_relationship = view.owner_relationship
    return out


# ==========================================================
# CATEGORIES
# ==========================================================
@router.get("/categories", response_model=list[str])
def list_categories():
    return list(DOCUMENT_CATEGORIES)


# ==========================================================
# VISIBLE TO ME (own + family shared)
# ==========================================================
@router.get("/visible", response_model=list[DocumentOut])
def list_visible_documents(
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    views = services.documents.list_visible_to(claims.user_id)
    return [document_view_out(v) for v in views]


# ==========================================================
# UPDATE SHARING (owner only)
# ==========================================================
@router.patch("/{doc_id}/sharing")
def update_document_sharing(
    doc_id: str,
    payload: SharingUpdate,
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    doc = services.documents.set_sharing(doc_id, claims.user_id, payload.is_shared)

    return {
        "message": "Document sharing updated",
        "document": DocumentOut.model_validate(doc),
    }
