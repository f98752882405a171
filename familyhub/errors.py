"""
Domain errors.

Every failure a caller can act on is one of these. Each class carries the
HTTP status the API layer answers with; the services never raise
HTTPException themselves.
"""


class FamilyHubError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FamilyHubError):
    default_message = "Invalid input"


class PasswordPolicyViolation(ValidationError):
    default_message = "Password does not meet the policy"


class DuplicateName(FamilyHubError):
    status_code = 409
    default_message = "Family name already exists"


class NotFound(FamilyHubError):
    status_code = 404
    default_message = "Not found"


class InvalidCredentials(FamilyHubError):
    status_code = 401
    default_message = "Invalid password"


class Unauthenticated(FamilyHubError):
    status_code = 401
    default_message = "Access token required"


class Forbidden(FamilyHubError):
    status_code = 403
    default_message = "Not allowed"


class UnsupportedType(FamilyHubError):
    status_code = 415
    default_message = "File type not allowed"


class TooLarge(FamilyHubError):
    status_code = 413
    default_message = "File too large"


class GalleryFull(FamilyHubError):
    status_code = 409
    default_message = "Gallery already holds the maximum number of photos"


# ============================================================
# TOKEN ERRORS
# ============================================================

class TokenError(FamilyHubError):
    status_code = 401
    default_message = "Invalid token"


class TokenExpired(TokenError):
    default_message = "Token expired"


class TokenMalformed(TokenError):
    default_message = "Malformed token"


class TokenInvalidSignature(TokenError):
    default_message = "Invalid token signature"


# ============================================================
# SESSION FLOW / INTERNAL
# ============================================================

class IllegalTransition(FamilyHubError):
    status_code = 409
    default_message = "Not allowed in the current session state"


class InternalError(FamilyHubError):
    """Storage or database failure. Details are logged, never returned."""

    status_code = 500
    default_message = "Server error"
