"""Exceptions raised by the file manager core.

Routes never build error responses for these by hand: ``main`` registers a
single handler that renders any ``FilesManagerError`` as ``{"error": message}``
with the class's ``status_code``.
"""


class FilesManagerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(FilesManagerError):
    """No principal could be resolved for an operation that requires one."""

    status_code = 401
    default_message = "Unauthorized"


class ValidationError(FilesManagerError):
    """Missing or invalid input field (name, type, data, parentId)."""

    status_code = 400
    default_message = "Invalid request"


class NotFound(FilesManagerError):
    """Record absent, not visible to the caller, or content missing on disk.

    Access denials are reported with this class on purpose so callers cannot
    probe for the existence of other users' private records.
    """

    status_code = 404
    default_message = "Not found"


class UnsupportedOperation(FilesManagerError):
    """Operation not applicable to the record kind (content of a folder)."""

    status_code = 400
    default_message = "Unsupported operation"
