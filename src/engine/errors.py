"""Exception classes raised by the format engines."""


class BracketError(Exception):
    """Base class for every error raised by a format engine."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(BracketError):
    """Raised when the caller's input is malformed."""

    def __init__(self, message="Invalid input."):
        super().__init__(message, 400)


class ReferenceNotFoundError(BracketError):
    """Raised when a match, group or game reference does not exist."""

    def __init__(self, message="Reference not found."):
        super().__init__(message, 404)


class StateConflictError(BracketError):
    """Raised when an operation is not allowed in the bracket's current state."""

    def __init__(self, message="Operation not allowed in the current state."):
        super().__init__(message, 409)
