from familyhub.core.session_flow import FamilySession, SessionState

__all__ = ["FamilySession", "SessionState"]
