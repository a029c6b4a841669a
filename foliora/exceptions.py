"""
Domain exceptions for Foliora.

Raised by the storage layer and route dependencies, translated into
structured JSON responses by ``foliora.api.middleware.error_handler``.
"""


class FolioraException(Exception):
    """Base exception for Foliora errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: str = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(FolioraException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource.lower()} with identifier '{identifier}' exists",
        )


class ConflictError(FolioraException):
    """Uniqueness constraint on a nested collection was violated."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=400,
            detail=detail,
        )


class ForbiddenError(FolioraException):
    """Caller is authenticated but not allowed to perform the action."""

    def __init__(self, message: str = "Forbidden access", detail: str = None):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
            detail=detail,
        )


class UnauthorizedError(FolioraException):
    """No usable credential was presented."""

    def __init__(self, message: str = "Unauthorized access", detail: str = None):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=401,
            detail=detail,
        )


class ValidationError(FolioraException):
    """Input validation failed."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class StoreError(FolioraException):
    """Underlying persistence failure."""

    def __init__(self, message: str = "Database operation failed", detail: str = None):
        super().__init__(
            message=message,
            code="STORE_ERROR",
            status_code=500,
            detail=detail,
        )
