"""
Error taxonomy for the deploy logger.

Domain errors (DuplicateEntity, NotFound, ValidationError) are raised by the
store and mapped to client-facing status codes by the API layer.
InternalFailure covers everything else and is surfaced generically.
"""


class DeployLoggerError(Exception):
    """Base class for all deploy logger errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(DeployLoggerError):
    """Request body or parameter failed boundary validation."""
    status_code = 400


class DuplicateEntity(DeployLoggerError):
    """A project with the same name already exists."""
    status_code = 422


class NotFound(DeployLoggerError):
    """Referenced project or deploy does not exist."""
    status_code = 404


class InternalFailure(DeployLoggerError):
    """Storage error, lock timeout or any unexpected condition."""
    status_code = 500

    def to_dict(self) -> dict:
        # Details stay in the logs
        return {"error": "An internal error occurred"}


class WriteLockTimeout(InternalFailure):
    """The write lock could not be acquired within the configured timeout."""
