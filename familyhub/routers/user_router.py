from fastapi import APIRouter, Depends, status

from familyhub.auth.tokens import SessionClaims
from familyhub.core.access import get_current_session, get_services
from familyhub.schemas.document_schema import DocumentOut
from familyhub.schemas.user_schema import UserCreateRequest, UserLoginOut, UserLoginRequest, UserOut
from familyhub.services import MemberProfile, Services

router = APIRouter(prefix="/api/users", tags=["Users"])


# ----------------- CREATE PROFILE ------------------

@router.post("/create", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreateRequest,
    services: Services = Depends(get_services),
):
    # Family secret is the only credential needed to add a profile
    services.credentials.verify_family_id(payload.family_id, payload.family_password)

    user_id = services.identity.add_member(
        payload.family_id,
        MemberProfile(
            full_name=payload.full_name,
            relationship=payload.relationship,
            has_children=payload.has_children,
            date_of_birth=payload.date_of_birth,
        ),
        payload.password,
    )
    return services.identity.get_user(user_id)


# ------------------- LOGIN -------------------

@router.post("/login", response_model=UserLoginOut)
def login_user(
    payload: UserLoginRequest,
    services: Services = Depends(get_services),
):
    user = services.credentials.verify_user(payload.user_id, payload.password)
    token = services.tokens.issue_token(user.id, user.family_id, user.role)

    return {
        "token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }


# -------------------- ME ---------------------

@router.get("/me", response_model=UserOut)
def get_me(
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    return services.identity.get_user(claims.user_id)


# -------------------- DOCUMENTS ---------------------

@router.get("/{user_id}/documents", response_model=list[DocumentOut])
def list_user_documents(
    user_id: str,
    claims: SessionClaims = Depends(get_current_session),
    services: Services = Depends(get_services),
):
    # Own documents in full; a relative's shared ones; other families never
    return services.documents.list_for_viewer(claims.user_id, user_id)
