import logging
import re

import bcrypt
from sqlalchemy import select

from familyhub.database import Database
from familyhub.errors import InvalidCredentials, NotFound, PasswordPolicyViolation
from familyhub.models.family import Family
from familyhub.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
_DIGIT = re.compile(r"\d")


# ============================================================
# PASSWORD POLICY
# ============================================================

def check_family_password(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordPolicyViolation(
            f"Family password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def check_personal_password(password: str) -> None:
    if (
        not isinstance(password, str)
        or len(password) < MIN_PASSWORD_LENGTH
        or not _DIGIT.search(password)
    ):
        raise PasswordPolicyViolation(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters with at least one number"
        )


# ============================================================
# PASSWORD HELPERS
# ============================================================

class PasswordHasher:
    """bcrypt with a fixed cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        password_bytes = password.encode("utf-8")[:72]
        return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, hashed: str) -> bool:
        password_bytes = password.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(password_bytes, hashed.encode())
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.error("Unreadable password hash encountered")
            return False


# ============================================================
# CREDENTIAL VERIFIER
# ============================================================

class CredentialVerifier:
    """
    Two independent password domains: the family's shared secret and each
    member's personal secret. Each has its own hasher and cost factor.
    """

    def __init__(self, db: Database, family_rounds: int = 12, user_rounds: int = 12):
        self.db = db
        self.family_hasher = PasswordHasher(family_rounds)
        self.user_hasher = PasswordHasher(user_rounds)

    def hash_family_password(self, password: str) -> str:
        return self.family_hasher.hash(password)

    def hash_user_password(self, password: str) -> str:
        return self.user_hasher.hash(password)

    def verify_family(self, name: str, password: str) -> Family:
        name = (name or "").strip()
        with self.db.session_scope() as s:
            family = s.scalars(select(Family).where(Family.family_name == name)).first()

        if family is None:
            raise NotFound("Family not found")
        return self._check_family(family, password)

    def verify_family_id(self, family_id: str, password: str) -> Family:
        with self.db.session_scope() as s:
            family = s.get(Family, family_id)

        if family is None:
            raise NotFound("Family not found")
        return self._check_family(family, password)

    def verify_user(self, user_id: str, password: str) -> User:
        with self.db.session_scope() as s:
            user = s.get(User, user_id)

        if user is None:
            raise NotFound("User not found")
        if not self.user_hasher.verify(password or "", user.password_hash):
            logger.info("Failed personal login for user %s", user_id)
            raise InvalidCredentials()
        return user

    def _check_family(self, family: Family, password: str) -> Family:
        if not self.family_hasher.verify(password or "", family.password_hash):
            logger.info("Failed family login for family %s", family.id)
            raise InvalidCredentials()
        return family
