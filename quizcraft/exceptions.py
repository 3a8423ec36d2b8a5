"""
Domain errors raised by the assessment engine

Each error carries the HTTP status and machine-readable code that the
exception handlers in quizcraft.main render for the transport layer.
"""


class QuizcraftError(Exception):
    """Base class for typed engine failures"""

    status_code = 500
    code = "quizcraft_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(QuizcraftError):
    """Quiz, attempt, progress record or question does not exist"""

    status_code = 404
    code = "not_found"


class AccessDeniedError(QuizcraftError):
    """Caller does not own the resource or lacks the required role"""

    status_code = 403
    code = "access_denied"


class InvalidStateError(QuizcraftError):
    """Operation is illegal for the current lifecycle state"""

    status_code = 409
    code = "invalid_state"


class InactiveQuizError(InvalidStateError):
    """Quiz exists but has been disabled by its instructor"""

    code = "inactive"


class ValidationError(QuizcraftError):
    """Malformed input payload"""

    status_code = 400
    code = "validation_error"
