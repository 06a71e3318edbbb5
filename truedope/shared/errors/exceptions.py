"""Base application exceptions shared across features."""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base exception carrying a stable machine-readable error code.

    Rendered into the response envelope by the registered exception handlers.
    """

    code: str = "ERROR"

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        code: str | None = None,
        headers: dict[str, str] | None = None,
        fields: dict[str, list[str]] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        if code is not None:
            self.code = code
        self.fields = fields


class ValidationException(AppException):
    """Raised when input is well-formed JSON but fails a business validation rule."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, messages: list[str], detail: str = "Validation failed"):
        super().__init__(
            detail=detail,
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            fields={field: messages},
        )


class NotFoundException(AppException):
    """Raised when a requested resource does not exist."""

    code = "NOT_FOUND"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class ConflictException(AppException):
    """Raised when a create or update collides with existing state."""

    code = "CONFLICT"

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class TransientStoreError(AppException):
    """Raised when the database or token store times out or is unreachable."""

    code = "TRANSIENT_STORE_ERROR"

    def __init__(self, detail: str = "Service temporarily unavailable, please retry"):
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
