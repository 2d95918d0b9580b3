"""Typed errors for numbering and conversion failures.

Every error carries a machine-readable ``code``; the API layer maps codes to
HTTP statuses. Nothing here is raised after a partial write: callers can rely
on "error means nothing changed".
"""


class FieldOpsError(Exception):
    """Base class for domain errors crossing the core boundary."""

    code = "FIELDOPS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigNotFoundError(FieldOpsError):
    """No numbering configuration for the requested document kind."""

    code = "CONFIG_NOT_FOUND"


class StorageUnavailableError(FieldOpsError):
    """
    Database could not be reached or the transaction was aborted.

    Transient. The operation did not apply and is safe to retry.
    """

    code = "STORAGE_UNAVAILABLE"


class ForbiddenError(FieldOpsError):
    """Caller's role does not permit the operation."""

    code = "FORBIDDEN"


class NotFoundError(FieldOpsError):
    """Entity does not exist or belongs to another company."""

    code = "NOT_FOUND"


class InvalidStateError(FieldOpsError):
    """Entity is not in a state that permits the operation."""

    code = "INVALID_STATE"

    def __init__(self, message: str, current_status: str | None = None):
        self.current_status = current_status
        super().__init__(message)


class AlreadyConvertedError(FieldOpsError):
    """Estimate has already been converted to a project."""

    code = "ALREADY_CONVERTED"
