from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from familyhub.auth.tokens import SessionClaims
from familyhub.errors import Forbidden, Unauthenticated
from familyhub.services import Services

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/users/login", auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_session(
    token: str | None = Depends(oauth2_scheme),
    services: Services = Depends(get_services),
) -> SessionClaims:
    """
    Every gated route depends on this. The claims are trusted as issued;
    there is no per-request user lookup.
    """
    if not token:
        raise Unauthenticated()
    return services.tokens.verify_token(token)


def require_family(claims: SessionClaims, family_id: str) -> None:
    """Family-scoped paths must name the caller's own family."""
    if claims.family_id != family_id:
        raise Forbidden("Not a member of this family")
