"""
Service layer exceptions for calls to the upstream employee service.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class RequestTimeoutError(ServiceError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class RateLimitError(ServiceError):
    """Rate limit exceeded (HTTP 429)."""

    def __init__(self, service_id: str, retry_after: float | None = None):
        self.retry_after = retry_after
        self.status_code = 429
        msg = f"Rate limit exceeded for service '{service_id}'"
        if retry_after:
            msg += f", retry after {retry_after}s"
        super().__init__(msg, service_id=service_id)


class ServiceUnavailableError(ServiceError):
    """Service could not be reached (connection failure)."""

    pass


class UpstreamStatusError(ServiceError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, service_id: str, status_code: int, body: str = ""):
        self.status_code = status_code
        super().__init__(
            f"HTTP {status_code}: {body[:200]}",
            service_id=service_id,
        )

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600


class DecodeError(ServiceError):
    """Response body is not a valid envelope."""

    pass


class RetriesExhaustedError(ServiceError):
    """Retryable failures persisted past the attempt budget."""

    def __init__(self, service_id: str, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Retries exhausted for service '{service_id}' after {attempts} "
            f"attempts: {last_error}",
            service_id=service_id,
        )
