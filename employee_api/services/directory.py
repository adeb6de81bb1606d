"""
EmployeeDirectory - Read views and mutations over upstream employee records.

Reads are cache-first. Derived views (search, highest salary, top earners)
are computed from the cached full collection and cached in turn. Any
successful create or delete evicts the whole cache.
"""

from loguru import logger

from employee_api.exceptions import InternalError, NotFoundError, ValidationError
from employee_api.models import DeleteRequest, Employee, EmployeeInput
from employee_api.services.cache import CacheManager
from employee_api.services.client import ServiceClient
from employee_api.services.errors import UpstreamStatusError
from employee_api.services.validation import (
    format_violations,
    validate_employee_input,
)

ALL_KEY = "all"
HIGHEST_SALARY_KEY = "highestSalary"
TOP_TEN_KEY = "top10"
SEARCH_KEY_PREFIX = "search_"

TOP_EARNERS_LIMIT = 10


def _is_view_key(key: str) -> bool:
    return key in (ALL_KEY, HIGHEST_SALARY_KEY, TOP_TEN_KEY) or key.startswith(
        SEARCH_KEY_PREFIX
    )


class EmployeeDirectory:
    """
    Employee directory backed by the upstream service.

    Usage:
        directory = EmployeeDirectory(client, CacheManager())

        employees = await directory.list_all()
        top = await directory.top_ten_earners()
        name = await directory.delete_by_id("4a3a170b-22cd-4ac2-aad1-9bb5b34a1507")
    """

    def __init__(self, client: ServiceClient, cache: CacheManager | None = None):
        self.client = client
        self.cache = cache or CacheManager()

    async def list_all(self) -> list[Employee]:
        """Fetch the full collection (cache key ``all``)."""
        cached = await self.cache.get(ALL_KEY)
        if cached:
            return cached.data

        envelope = await self.client.get("", data_type=list[Employee])
        employees = envelope.data or []
        logger.debug(f"Fetched {len(employees)} employees from upstream")

        await self.cache.put(ALL_KEY, employees)
        return employees

    async def get_by_id(self, employee_id: str) -> Employee | None:
        """Fetch one employee (cache key ``<id>``). Returns None when it does not exist."""
        cached = await self.cache.get(employee_id)
        # Ids share the key space with the view keys ("all", "top10", ...)
        if cached and isinstance(cached.data, Employee):
            return cached.data

        logger.info(f"Fetching employee by ID: {employee_id}")
        try:
            envelope = await self.client.get(f"/{employee_id}", data_type=Employee)
        except UpstreamStatusError as e:
            if e.status_code == 404:
                logger.info(f"Employee {employee_id} not found upstream")
                return None
            raise

        if envelope.data is None:
            return None

        if not _is_view_key(employee_id):
            await self.cache.put(employee_id, envelope.data)
        return envelope.data

    async def search_by_name(self, term: str) -> list[Employee]:
        """Employees whose name contains ``term``, ignoring case (cache key ``search_<term>``)."""
        key = f"{SEARCH_KEY_PREFIX}{term}"
        cached = await self.cache.get(key)
        if cached:
            return cached.data

        logger.info(f"Searching employees by name: {term}")
        needle = term.lower()
        matches = [e for e in await self.list_all() if needle in e.name.lower()]
        logger.info(f"Found {len(matches)} employees matching search: {term}")

        await self.cache.put(key, matches)
        return matches

    async def highest_salary(self) -> int:
        """Highest salary in the collection, 0 when it is empty."""
        cached = await self.cache.get(HIGHEST_SALARY_KEY)
        if cached:
            return cached.data

        employees = await self.list_all()
        highest = max((e.salary for e in employees), default=0)
        logger.info(f"Highest salary found: {highest}")

        await self.cache.put(HIGHEST_SALARY_KEY, highest)
        return highest

    async def top_ten_earners(self) -> list[str]:
        """Names of the ten best paid employees, highest first.

        Equal salaries keep their upstream order.
        """
        cached = await self.cache.get(TOP_TEN_KEY)
        if cached:
            return cached.data

        employees = await self.list_all()
        ranked = sorted(employees, key=lambda e: e.salary, reverse=True)
        names = [e.name for e in ranked[:TOP_EARNERS_LIMIT]]
        logger.info(f"Top earners calculated: {len(names)}")

        await self.cache.put(TOP_TEN_KEY, names)
        return names

    async def create(self, data: EmployeeInput) -> Employee:
        """
        Validate and create an employee upstream.

        Raises:
            ValidationError: One message listing every invalid field
            InternalError: If the upstream response carries no employee
        """
        violations = validate_employee_input(data)
        if violations:
            raise ValidationError(format_violations(violations))

        logger.info(f"Creating new employee: {data.name}")
        envelope = await self.client.post(
            "", body=data.model_dump(), data_type=Employee
        )
        if envelope.data is None:
            logger.error(
                f"Upstream returned no employee for create (status={envelope.status})"
            )
            raise InternalError("Failed to create employee")

        await self.cache.evict_all()
        logger.info(f"Successfully created employee: {envelope.data.name}")
        return envelope.data

    async def delete_by_id(self, employee_id: str) -> str:
        """
        Delete an employee and return its name.

        The upstream service deletes by name, so every record sharing that
        name may be removed.

        Raises:
            NotFoundError: If no employee has this id
            InternalError: If the upstream does not confirm the deletion
        """
        logger.info(f"Deleting employee by ID: {employee_id}")
        employee = await self.get_by_id(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")

        payload = DeleteRequest(name=employee.name)
        envelope = await self.client.delete(
            "", body=payload.model_dump(), data_type=bool
        )
        if envelope.data is not True:
            logger.error(
                f"Upstream did not confirm deletion of {employee_id} "
                f"(status={envelope.status})"
            )
            raise InternalError("Failed to delete employee")

        await self.cache.evict_all()
        logger.info(f"Successfully deleted employee: {payload.name}")
        return payload.name
