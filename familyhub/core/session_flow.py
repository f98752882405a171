"""
Client-side session lifecycle.

    UNAUTHENTICATED --select_family--> FAMILY_SELECTED --login--> AUTHENTICATED
          ^                                  |                          |
          +------------- logout -------------+--- logout / expiry ------+

Family selection proves knowledge of the family secret and allows only
listing members and creating profiles. Everything else needs the token a
personal login produces.

The HTTP routes are stateless and do not use this class. It is the
lifecycle model exported for callers that drive the services directly,
such as a client shell or scripts, through `familyhub.core`.
"""
import enum
import logging

from familyhub.auth.tokens import SessionClaims
from familyhub.errors import IllegalTransition, NotFound, TokenExpired
from familyhub.models.family import Family
from familyhub.models.user import User
from familyhub.services import Services
from familyhub.services.identity_service import MemberProfile

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    FAMILY_SELECTED = "family_selected"
    AUTHENTICATED = "authenticated"


class FamilySession:
    def __init__(self, services: Services):
        self.services = services
        self.state = SessionState.UNAUTHENTICATED
        self.family: Family | None = None
        self.user: User | None = None
        self.token: str | None = None

    # -------------------------------------------------------
    # TRANSITIONS
    # -------------------------------------------------------

    def select_family(self, family_name: str, password: str) -> list[User]:
        self._expect(SessionState.UNAUTHENTICATED)
        family = self.services.credentials.verify_family(family_name, password)
        self.family = family
        self.state = SessionState.FAMILY_SELECTED
        return self.members()

    def login(self, user_id: str, password: str) -> str:
        self._expect(SessionState.FAMILY_SELECTED)

        # Only members of the selected family can be picked
        if user_id not in {m.id for m in self.members()}:
            raise NotFound("User not found")

        user = self.services.credentials.verify_user(user_id, password)
        self.token = self.services.tokens.issue_token(user.id, user.family_id, user.role)
        self.user = user
        self.state = SessionState.AUTHENTICATED
        return self.token

    def logout(self) -> None:
        if self.state is SessionState.UNAUTHENTICATED:
            raise IllegalTransition("Already logged out")
        self._reset()

    # -------------------------------------------------------
    # FAMILY_SELECTED (and later) OPERATIONS
    # -------------------------------------------------------

    def members(self) -> list[User]:
        self._expect(SessionState.FAMILY_SELECTED, SessionState.AUTHENTICATED)
        return self.services.identity.list_members(self.family.id)

    def create_profile(self, profile: MemberProfile, password: str) -> str:
        self._expect(SessionState.FAMILY_SELECTED)
        return self.services.identity.add_member(self.family.id, profile, password)

    # -------------------------------------------------------
    # AUTHENTICATED
    # -------------------------------------------------------

    def claims(self) -> SessionClaims:
        """
        Verified claims for the held token. An expired token drops the
        session back to UNAUTHENTICATED before the error propagates.
        """
        self._expect(SessionState.AUTHENTICATED)
        try:
            return self.services.tokens.verify_token(self.token)
        except TokenExpired:
            logger.info("Session token expired; logging out")
            self._reset()
            raise

    # -------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------

    def _expect(self, *states: SessionState) -> None:
        if self.state not in states:
            raise IllegalTransition(
                f"Not allowed while {self.state.value}"
            )

    def _reset(self) -> None:
        self.state = SessionState.UNAUTHENTICATED
        self.family = None
        self.user = None
        self.token = None
