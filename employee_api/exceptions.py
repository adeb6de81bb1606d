"""
Directory exceptions, mapped to HTTP status codes by the server.
"""

from fastapi import status


class DirectoryError(Exception):
    """Base exception for employee directory errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(DirectoryError):
    """Bad caller input"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Validation error"):
        super().__init__(detail)


class NotFoundError(DirectoryError):
    """Not found error exception"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail)


class InternalError(DirectoryError):
    """Upstream accepted the call but reported failure, or another unexpected state"""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
