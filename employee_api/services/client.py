"""
ServiceClient - Async HTTP client for the upstream employee service.

Combines:
- httpx.AsyncClient with per-attempt connect/response timeouts
- BackoffPolicy for retrying transient failures
- Envelope decoding into typed pydantic models
"""

import asyncio
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from employee_api.models import Envelope
from employee_api.services.backoff import BackoffPolicy
from employee_api.services.errors import (
    DecodeError,
    RateLimitError,
    RequestTimeoutError,
    RetriesExhaustedError,
    ServiceError,
    ServiceUnavailableError,
    UpstreamStatusError,
)

SleepFn = Callable[[float], Awaitable[None]]


class ServiceClient:
    """
    HTTP client with timeouts, retry/backoff and envelope decoding.

    Usage:
        async with ServiceClient(base_url="http://localhost:8112/api/v1/employee") as client:
            envelope = await client.get("", data_type=list[Employee])
            employees = envelope.data or []
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        policy: BackoffPolicy | None = None,
        service_id: str = "employee",
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn | None = None,
    ):
        self.base_url = base_url
        self.service_id = service_id
        self._timeout = timeout
        self._policy = policy or BackoffPolicy()
        self._sleep = sleep or asyncio.sleep

        # HTTP client (lazy initialization unless injected)
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout, connect=self._timeout),
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._http_client

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        data_type: Any = Any,
    ) -> Envelope[Any]:
        """GET ``path`` and decode the envelope."""
        return await self.request("GET", path, params=params, data_type=data_type)

    async def post(
        self,
        path: str,
        body: dict[str, Any],
        data_type: Any = Any,
    ) -> Envelope[Any]:
        """POST a JSON body to ``path`` and decode the envelope."""
        return await self.request("POST", path, json_data=body, data_type=data_type)

    async def delete(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        data_type: Any = Any,
    ) -> Envelope[Any]:
        """DELETE ``path`` (optionally with a JSON body) and decode the envelope."""
        return await self.request("DELETE", path, json_data=body, data_type=data_type)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        data_type: Any = Any,
    ) -> Envelope[Any]:
        """
        Make an HTTP request, retrying transient failures.

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: Path relative to the base URL ("" for the base URL itself)
            params: Query parameters
            json_data: JSON body for POST/DELETE requests
            data_type: Expected type of the envelope's ``data`` payload

        Returns:
            Decoded Envelope

        Raises:
            RetriesExhaustedError: If every attempt failed with a retryable error
            DecodeError: If the response is not a valid envelope
            ServiceError: For other, non-retryable, service errors
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                payload = await self._execute_request(method, path, params, json_data)
                return self._decode(payload, data_type)

            except ServiceError as e:
                if not self._policy.should_retry(e):
                    raise

                if not self._policy.has_attempts_left(attempt):
                    logger.error(
                        f"{method} {path} failed after {attempt} attempts: {e}"
                    )
                    raise RetriesExhaustedError(self.service_id, attempt, e) from e

                delay = self._policy.delay_for_attempt(attempt)
                if isinstance(e, RateLimitError) and e.retry_after:
                    delay = max(delay, min(e.retry_after, self._policy.max_delay))
                logger.warning(
                    f"Retrying request (retry {attempt}/{self._policy.max_attempts - 1}) "
                    f"in {delay:.2f}s due to: {e}"
                )
                await self._sleep(delay)

    async def _execute_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        json_data: dict[str, Any] | None,
    ) -> Any:
        """Execute a single HTTP attempt and return the parsed JSON body."""
        client = await self._get_http_client()

        try:
            response = await client.request(
                method=method,
                url=self._url(path),
                params=params,
                json=json_data,
            )

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.service_id, self._timeout) from e

        except (httpx.NetworkError, httpx.RemoteProtocolError) as e:
            # Refused, reset or dropped before a response arrived
            raise ServiceUnavailableError(
                f"Connection to service '{self.service_id}' failed: {e!r}",
                service_id=self.service_id,
            ) from e

        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=self.service_id) from e

        if response.status_code == 429:
            raise RateLimitError(self.service_id, _parse_retry_after(response))

        if response.is_error:
            raise UpstreamStatusError(
                self.service_id, response.status_code, response.text
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(
                f"Response from '{self.service_id}' is not valid JSON",
                service_id=self.service_id,
            ) from e

    def _url(self, path: str) -> str:
        """Absolute URL for ``path``; an empty path is the base URL itself, without a trailing slash."""
        base = self.base_url.rstrip("/")
        if not path:
            return base
        return f"{base}/{path.lstrip('/')}"

    def _decode(self, payload: Any, data_type: Any) -> Envelope[Any]:
        """Validate a JSON payload against ``Envelope[data_type]``."""
        try:
            return Envelope[data_type].model_validate(payload)
        except PydanticValidationError as e:
            raise DecodeError(
                f"Malformed envelope from '{self.service_id}': {e.error_count()} errors",
                service_id=self.service_id,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def _parse_retry_after(response: httpx.Response) -> float | None:
    """Read a numeric Retry-After header, ignoring HTTP-date values."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
