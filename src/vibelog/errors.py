"""Exception types raised by vibelog."""


class VibelogError(Exception):
    """Base class for vibelog errors."""


class SessionStateError(VibelogError):
    """Raised when a session lifecycle transition is not allowed."""
