"""Error taxonomy for the grading flow."""


class GradingError(Exception):
    """Base class; carries the HTTP status the API layer maps it to."""

    status_code = 500

    def __init__(self, message: str = "Grading failed"):
        super().__init__(message)
        self.message = message


class Unauthorized(GradingError):
    """Missing, malformed or unverifiable bearer token."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(GradingError):
    status_code = 404


class EnrollmentRequired(GradingError):
    """Caller holds no active enrollment for the course."""

    status_code = 403

    def __init__(self, message: str = "You must be enrolled in the course to take this exam"):
        super().__init__(message)
