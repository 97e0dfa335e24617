# pagepub/domain/errors.py
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    VALIDATION = "ValidationError"
    CORRUPT_SNAPSHOT = "CorruptSnapshot"
    ACCESS_DENIED = "AccessDenied"
    DIFF_FORMAT = "DiffFormatError"


class PublishingError(Exception):
    """
    Base for every failure the publishing core reports.

    Each subclass pins an ErrorKind and the HTTP status the boundary answers with.
    """
    kind: ErrorKind
    status_code: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def public_kind(self) -> str:
        return self.kind.value

    def public_message(self) -> str:
        return self.message


class NotFoundError(PublishingError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(PublishingError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class ValidationError(PublishingError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class CorruptSnapshotError(PublishingError):
    kind = ErrorKind.CORRUPT_SNAPSHOT
    status_code = 500

    def public_message(self) -> str:
        return "Page could not be rendered"


class AccessDeniedError(PublishingError):
    # Answered exactly like a missing page so drafts never leak their existence.
    kind = ErrorKind.ACCESS_DENIED
    status_code = 404

    def public_kind(self) -> str:
        return ErrorKind.NOT_FOUND.value

    def public_message(self) -> str:
        return "Page not found"


class DiffFormatError(PublishingError):
    kind = ErrorKind.DIFF_FORMAT
    status_code = 400


# Collaborator failures. The renderer turns these into per-section omissions.

class DataSourceError(Exception):
    pass


class UnknownTableError(DataSourceError):
    pass


class ConditionError(Exception):
    pass
