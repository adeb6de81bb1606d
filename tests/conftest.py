import json
import random
from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from employee_api.server import create_app
from employee_api.services.backoff import BackoffConfig, BackoffPolicy
from employee_api.services.cache import CacheManager
from employee_api.services.client import ServiceClient
from employee_api.services.directory import EmployeeDirectory
from employee_api.settings import Settings

BASE_URL = "http://upstream.test/api/v1/employee"
BASE_PATH = "/api/v1/employee"


def make_employee(employee_id: str, name: str, salary: int, age: int = 30, title: str = "Developer") -> dict:
    """Employee in the upstream wire format."""
    return {
        "id": employee_id,
        "employee_name": name,
        "employee_salary": salary,
        "employee_age": age,
        "employee_title": title,
        "employee_email": f"{name.split()[0].lower()}@company.com",
    }


class FakeUpstream:
    """In-memory stand-in for the upstream employee service.

    Status codes queued in ``failures`` are returned, one per request, before
    normal handling resumes.
    """

    def __init__(self, employees: list[dict]):
        self.employees = list(employees)
        self.requests: list[httpx.Request] = []
        self.failures: list[int] = []
        self.create_returns_null = False
        self.delete_returns_false = False
        self._next_id = 100

    def count(self, method: str, path: str = "") -> int:
        return sum(
            1
            for r in self.requests
            if r.method == method and self._relative(r) == path
        )

    def bodies(self, method: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == method]

    def _relative(self, request: httpx.Request) -> str:
        return request.url.path.removeprefix(BASE_PATH).strip("/")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.failures:
            return httpx.Response(self.failures.pop(0), json={"status": "error"})

        path = self._relative(request)

        if request.method == "GET" and not path:
            return self._ok(self.employees)

        if request.method == "GET":
            for employee in self.employees:
                if employee["id"] == path:
                    return self._ok(employee)
            return httpx.Response(404, json={"status": "Not found"})

        if request.method == "POST":
            if self.create_returns_null:
                return self._ok(None)
            body = json.loads(request.content)
            self._next_id += 1
            employee = make_employee(
                str(self._next_id), body["name"], body["salary"], body["age"], body["title"]
            )
            self.employees.append(employee)
            return self._ok(employee)

        if request.method == "DELETE":
            if self.delete_returns_false:
                return self._ok(False)
            name = json.loads(request.content)["name"]
            before = len(self.employees)
            self.employees = [e for e in self.employees if e["employee_name"] != name]
            return self._ok(len(self.employees) < before)

        return httpx.Response(405)

    @staticmethod
    def _ok(data) -> httpx.Response:
        return httpx.Response(
            200, json={"data": data, "status": "Successfully processed request."}
        )


class RecordingSleep:
    """Replaces asyncio.sleep; records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_client(handler, sleep: RecordingSleep, max_attempts: int = 3) -> ServiceClient:
    http_client = httpx.AsyncClient(
        base_url=BASE_URL, transport=httpx.MockTransport(handler)
    )
    policy = BackoffPolicy(
        BackoffConfig(
            max_attempts=max_attempts,
            initial_delay=timedelta(milliseconds=500),
            max_backoff=timedelta(seconds=10),
        ),
        rng=random.Random(42),
    )
    return ServiceClient(
        base_url=BASE_URL,
        timeout=1.0,
        policy=policy,
        http_client=http_client,
        sleep=sleep,
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def employees() -> list[dict]:
    return [
        make_employee("1", "John Doe", 50000, 30, "Developer"),
        make_employee("2", "Jane Smith", 75000, 28, "Senior Developer"),
        make_employee("3", "Bob Johnson", 90000, 35, "Tech Lead"),
    ]


@pytest.fixture
def upstream(employees) -> FakeUpstream:
    return FakeUpstream(employees)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def service_client(upstream, sleep) -> ServiceClient:
    return make_client(upstream.handler, sleep)


@pytest.fixture
def directory(service_client) -> EmployeeDirectory:
    return EmployeeDirectory(service_client, CacheManager())


@pytest.fixture
def settings() -> Settings:
    return Settings(log_level="WARNING")


@pytest.fixture
def api(settings, directory) -> TestClient:
    """A test client for the FastAPI app backed by the fake upstream."""
    return TestClient(create_app(settings, directory))
