"""Exceptions raised by the link gate core."""


class LinkGateError(Exception):
    """Base class for link gate errors."""


class NotResolvable(LinkGateError):
    """A code is unknown or its link has expired.

    The reason is kept for logs only; visitors see the same page either way.
    """

    NOT_FOUND = "not_found"
    EXPIRED = "expired"

    def __init__(self, code: str, reason: str = NOT_FOUND):
        super().__init__(f"Code '{code}' is not resolvable ({reason})")
        self.code = code
        self.reason = reason


class TransientLookupFailure(LinkGateError):
    """An IP or geolocation lookup failed; callers downgrade to unknown."""


class RecordingFailure(LinkGateError):
    """A click or counter write failed; logged, never shown to visitors."""


class AtomicIncrementUnavailable(LinkGateError):
    """The store cannot increment the click counter atomically."""


class LinkValidationError(ValueError):
    """Link creation input is invalid."""


class ShortCodeConflictError(ValueError):
    """The requested short code already exists."""
