"""Exceptions raised by the mediator core and its storage collaborators."""


class DiplomatError(Exception):
    """Base class for all Diplomat errors."""


class SessionNotFoundError(DiplomatError):
    """Raised when a session code does not refer to a known conversation."""

    def __init__(self, session_code: str) -> None:
        super().__init__(f"Session not found: {session_code}")
        self.session_code = session_code


class SessionFullError(DiplomatError):
    """Raised when a third person tries to join an active session."""


class ParticipantNotFoundError(DiplomatError):
    """Raised when a name is not one of the session's participants."""


class GroundRulesNotFoundError(DiplomatError):
    """Raised when a ground-rules document id is unknown."""
