from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from familyhub.errors import TokenExpired, TokenInvalidSignature, TokenMalformed


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    family_id: str
    # Carried for display; no operation authorizes on it
    role: str
    expires_at: datetime


class TokenIssuer:
    """
    Mints and checks self-contained session tokens. There is no server-side
    session table, so a token stays valid until it expires.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    # ============================================================
    # TOKEN CREATION
    # ============================================================

    def issue_token(self, user_id: str, family_id: str, role: str) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user_id),
            "family_id": str(family_id),
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    # ============================================================
    # TOKEN VERIFICATION
    # ============================================================

    def verify_token(self, token: str) -> SessionClaims:
        if not token:
            raise TokenMalformed()

        # Anything that does not even parse is malformed, not forged
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise TokenMalformed()

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError:
            raise TokenInvalidSignature()

        user_id = payload.get("sub")
        family_id = payload.get("family_id")
        exp = payload.get("exp")
        if not user_id or not family_id or exp is None:
            raise TokenMalformed("Token is missing required claims")

        return SessionClaims(
            user_id=user_id,
            family_id=family_id,
            role=payload.get("role") or "member",
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
