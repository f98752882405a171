from familyhub.auth.passwords import (
    CredentialVerifier,
    PasswordHasher,
    check_family_password,
    check_personal_password,
)
from familyhub.auth.tokens import SessionClaims, TokenIssuer

__all__ = [
    "CredentialVerifier",
    "PasswordHasher",
    "check_family_password",
    "check_personal_password",
    "SessionClaims",
    "TokenIssuer",
]
