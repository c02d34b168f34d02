"""Errors surfaced to clients at the request boundary."""


class TodoApiError(Exception):
    """Base error carrying an HTTP status and an optional client message."""

    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message


class BadRequestError(TodoApiError):
    """Raised for malformed ids, malformed bodies and id mismatches."""

    status_code = 400


class TaskNotFoundError(TodoApiError):
    """Raised when a requested task id is not in the store."""

    status_code = 404


class InternalServerError(TodoApiError):
    """Raised when a stored task cannot be serialized."""

    status_code = 500
