from fastapi import APIRouter, Depends, status

from familyhub.auth.tokens import SessionClaims
from familyhub.core.access import get_current_session, get_services, require_family
from familyhub.routers.document_router import document_view_out
from familyhub.schemas.document_schema import DocumentOut
from familyhub.schemas.family_schema import (
    FamilyLoginOut,
    FamilyLoginRequest,
    FamilyOut,
    FamilyRegisterOut,
    FamilyRegisterRequest,
)
from familyhub.schemas.user_schema import UserOut
from familyhub.services import MemberProfile, Services

router = APIRouter(prefix="/api/families", tags=["Families"])


# --------------------------------------------------
# REGISTER FAMILY (+ first admin)
# --------------------------------------------------
@router.post("/register", response_model=FamilyRegisterOut, status_code=status.HTTP_201_CREATED)
def register_family(
    payload: FamilyRegisterRequest,
    services: Services = Depends(get_services),
):
    family_id, admin_id = services.identity.register_family(
        payload.family_name,
        payload.password,
        MemberProfile(
            full_name=payload.admin_name,
            relationship=payload.admin_relationship,
            has_children=payload.admin_has_children,
            date_of_birth=payload.admin_date_of_birth,
        ),
        payload.admin_password,
    )

    return {"family_id": family_id, "admin_id": admin_id}


# --------------------------------------------------
# FAMILY LOGIN (shared secret -> member picker)
# --------------------------------------------------
@router.post("/login", response_model=FamilyLoginOut)
def login_family(
    payload: FamilyLoginRequest,
    services: Services = Depends(get_services),
):
    family = services.credentials.verify_family(payload.family_name, payload.password)
    members = services.identity.list_members(family.id)

    return {
        "family": FamilyOut.model_validate(family),
        "members": [UserOut.model_validate(m) for m in members],
    }


# --------------------------------------------------
# MEMBERS
# --------------------------------------------------
@router.get("/{family_id}/members", response_model=list[UserOut])
def list_members(
    family_id: str,
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    require_family(claims, family_id)
    return services.identity.list_members(family_id)


# --------------------------------------------------
# SHARED DOCUMENTS
# --------------------------------------------------
@router.get("/{family_id}/shared-documents", response_model=list[DocumentOut])
def list_shared_documents(
    family_id: str,
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    require_family(claims, family_id)
    views = services.documents.list_shared_in_family(family_id)
    return [document_view_out(v) for v in views]
