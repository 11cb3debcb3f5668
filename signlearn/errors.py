"""Exception types shared by the store, services and routers."""


class SignLearnError(Exception):
    """Base class for expected, user-facing failures."""


class AuthenticationError(SignLearnError):
    """No session, an expired session, or bad credentials."""


class FetchError(SignLearnError):
    """A read or write against the relational store failed."""


class InputValidationError(SignLearnError):
    """Rejected input; nothing was changed."""


class InsufficientDataError(SignLearnError):
    """The pool of questions or signs is too small for the requested mode."""


class SessionNotFoundError(SignLearnError):
    """No active quiz or game session for this user."""
