"""FastAPI server exposing the employee directory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from employee_api.exceptions import (
    DirectoryError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from employee_api.log_config import setup_logging
from employee_api.models import Employee, EmployeeInput
from employee_api.services.backoff import BackoffPolicy
from employee_api.services.cache import CacheManager
from employee_api.services.client import ServiceClient
from employee_api.services.directory import EmployeeDirectory
from employee_api.services.errors import (
    RetriesExhaustedError,
    ServiceError,
    UpstreamStatusError,
)
from employee_api.settings import Settings, get_settings


def _require(value: str, field: str) -> str:
    """Strip a path parameter, rejecting blank values."""
    value = value.strip()
    if not value:
        logger.warning(f"Empty {field} provided")
        raise ValidationError(f"{field} must not be blank")
    return value


class EmployeeServer:
    """HTTP server for the employee directory."""

    def __init__(self, directory: EmployeeDirectory, prefix: str = ""):
        self.directory = directory

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info(f"Employee API started, upstream: {directory.client.base_url}")
            yield
            await directory.client.close()
            logger.info("Employee API stopped")

        self.app = FastAPI(title="Employee API", lifespan=lifespan)

        # Error translation
        self.app.add_exception_handler(DirectoryError, self.handle_directory_error)
        self.app.add_exception_handler(ServiceError, self.handle_service_error)
        self.app.add_exception_handler(
            RequestValidationError, self.handle_request_validation_error
        )
        self.app.add_exception_handler(Exception, self.handle_unexpected_error)

        # Register routes; fixed paths before /employee/{employee_id}
        base = f"{prefix.rstrip('/')}/employee"
        self.app.get(base, response_model=list[Employee])(self.get_all_employees)
        self.app.get(f"{base}/highestSalary", response_model=int)(
            self.get_highest_salary
        )
        self.app.get(
            f"{base}/topTenHighestEarningEmployeeNames", response_model=list[str]
        )(self.get_top_ten_highest_earning_employee_names)
        self.app.get(f"{base}/search/{{name}}", response_model=list[Employee])(
            self.search_employees_by_name
        )
        self.app.get(f"{base}/{{employee_id}}", response_model=Employee)(
            self.get_employee_by_id
        )
        self.app.post(
            base, response_model=Employee, status_code=status.HTTP_201_CREATED
        )(self.create_employee)
        self.app.delete(f"{base}/{{employee_id}}", response_model=str)(
            self.delete_employee_by_id
        )
        self.app.get("/health")(self.health_check)

    async def get_all_employees(self):
        employees = await self.directory.list_all()
        logger.debug(f"employees {len(employees)}")
        return employees

    async def search_employees_by_name(self, name: str):
        logger.info(f"Received request to search employees by name: {name}")
        term = _require(name, "Search string")
        return await self.directory.search_by_name(term)

    async def get_employee_by_id(self, employee_id: str):
        logger.info(f"Received request to get employee by ID: {employee_id}")
        employee_id = _require(employee_id, "ID")
        employee = await self.directory.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Entity not found")
        return employee

    async def get_highest_salary(self):
        logger.info("Received request to get highest salary")
        return await self.directory.highest_salary()

    async def get_top_ten_highest_earning_employee_names(self):
        logger.info("Received request to get top 10 highest earning employee names")
        return await self.directory.top_ten_earners()

    async def create_employee(self, employee_input: EmployeeInput):
        logger.info("Received request to create employee")
        return await self.directory.create(employee_input)

    async def delete_employee_by_id(self, employee_id: str):
        logger.info(f"Received request to delete employee by ID: {employee_id}")
        employee_id = _require(employee_id, "ID")
        try:
            return await self.directory.delete_by_id(employee_id)
        except NotFoundError as e:
            # Deleting a missing employee is reported as a server error
            raise InternalError(e.detail) from e

    async def health_check(self):
        """Health check endpoint."""
        return {
            "status": "ok",
            "cache": self.directory.cache.get_stats().to_dict(),
            "cached_keys": self.directory.cache.keys(),
            "retry": self.directory.client.policy.get_status(),
        }

    # Exception handlers

    async def handle_directory_error(self, request: Request, exc: DirectoryError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    async def handle_service_error(self, request: Request, exc: ServiceError):
        if isinstance(exc, RetriesExhaustedError):
            logger.error(
                f"Retries exhausted for {request.method} {request.url.path}: {exc}"
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "error": "Service temporarily unavailable - too many requests"
                },
            )

        logger.error(f"Upstream error on {request.method} {request.url.path}: {exc}")
        if isinstance(exc, UpstreamStatusError) and exc.status_code == 404:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "Entity not found"},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "External service error"},
        )

    async def handle_request_validation_error(
        self, request: Request, exc: RequestValidationError
    ):
        errors = jsonable_encoder(exc.errors())
        logger.warning(f"Invalid request to {request.method} {request.url.path}: {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation error", "details": errors},
        )

    async def handle_unexpected_error(self, request: Request, exc: Exception):
        logger.exception(f"Error handling {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )


def create_directory(settings: Settings) -> EmployeeDirectory:
    """Build the upstream client, cache and directory from settings."""
    client = ServiceClient(
        base_url=settings.employee_api_base_url,
        timeout=settings.timeout_seconds,
        policy=BackoffPolicy(settings.backoff_config()),
    )
    return EmployeeDirectory(client, CacheManager(debug=settings.cache_debug))


def create_app(
    settings: Settings | None = None,
    directory: EmployeeDirectory | None = None,
) -> FastAPI:
    """Create FastAPI app for the employee directory.

    Args:
        settings: Settings to use (defaults to environment settings)
        directory: Prebuilt directory, mainly for tests

    Returns:
        FastAPI app
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    server = EmployeeServer(
        directory or create_directory(settings),
        prefix=settings.api_prefix,
    )
    return server.app
