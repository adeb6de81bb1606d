import json

import httpx
import pytest

from conftest import make_client, make_employee
from employee_api.models import Employee
from employee_api.services.errors import (
    DecodeError,
    RateLimitError,
    RetriesExhaustedError,
    ServiceUnavailableError,
    UpstreamStatusError,
)

pytestmark = pytest.mark.anyio

ENVELOPE = {"data": [make_employee("1", "John Doe", 50000)], "status": "ok"}


class ScriptedHandler:
    """Returns the queued responses (or raises the queued exceptions) in order."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        step = self.steps.pop(0)
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("simulated failure", request=request)
        if isinstance(step, int):
            return httpx.Response(step, json={"status": "error"})
        return step


@pytest.mark.parametrize("failures", [0, 1, 2])
async def test_rate_limited_request_succeeds_within_budget(sleep, failures):
    handler = ScriptedHandler(*([429] * failures), httpx.Response(200, json=ENVELOPE))
    client = make_client(handler, sleep, max_attempts=3)

    envelope = await client.get("/", data_type=list[Employee])

    assert envelope.data[0].name == "John Doe"
    assert handler.calls == failures + 1
    assert len(sleep.delays) == failures


async def test_rate_limited_request_fails_past_budget(sleep):
    handler = ScriptedHandler(429, 429, 429, httpx.Response(200, json=ENVELOPE))
    client = make_client(handler, sleep, max_attempts=3)

    with pytest.raises(RetriesExhaustedError) as exc_info:
        await client.get("/", data_type=list[Employee])

    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, RateLimitError)
    assert handler.calls == 3
    assert len(sleep.delays) == 2


async def test_backoff_delays_grow_between_retries(sleep):
    handler = ScriptedHandler(503, 503, 503, 503, 503)
    client = make_client(handler, sleep, max_attempts=5)

    with pytest.raises(RetriesExhaustedError):
        await client.get("/")

    assert len(sleep.delays) == 4
    for retry, delay in enumerate(sleep.delays, start=1):
        base = 0.5 * 2 ** (retry - 1)
        assert base * 0.5 <= delay <= base * 1.5


async def test_client_error_is_raised_without_retry(sleep):
    handler = ScriptedHandler(400)
    client = make_client(handler, sleep)

    with pytest.raises(UpstreamStatusError) as exc_info:
        await client.get("/")

    assert exc_info.value.status_code == 400
    assert handler.calls == 1
    assert sleep.delays == []


@pytest.mark.parametrize(
    "failure",
    [httpx.ConnectError, httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError],
)
async def test_connection_failures_are_retried(sleep, failure):
    handler = ScriptedHandler(failure, failure, failure)
    client = make_client(handler, sleep)

    with pytest.raises(RetriesExhaustedError) as exc_info:
        await client.get("/")

    assert isinstance(exc_info.value.last_error, ServiceUnavailableError)
    assert handler.calls == 3


async def test_dropped_connection_then_success(sleep):
    handler = ScriptedHandler(
        httpx.RemoteProtocolError, httpx.ReadError, httpx.Response(200, json=ENVELOPE)
    )
    client = make_client(handler, sleep)

    envelope = await client.get("", data_type=list[Employee])

    assert envelope.data[0].name == "John Doe"
    assert handler.calls == 3
    assert len(sleep.delays) == 2


async def test_timeout_then_success(sleep):
    handler = ScriptedHandler(httpx.ReadTimeout, httpx.Response(200, json=ENVELOPE))
    client = make_client(handler, sleep)

    envelope = await client.get("/", data_type=list[Employee])

    assert len(envelope.data) == 1
    assert len(sleep.delays) == 1


async def test_retry_after_header_extends_delay(sleep):
    handler = ScriptedHandler(
        httpx.Response(429, headers={"Retry-After": "3"}),
        httpx.Response(200, json=ENVELOPE),
    )
    client = make_client(handler, sleep)

    await client.get("/")

    assert sleep.delays[0] >= 3.0


async def test_malformed_envelope_is_a_decode_error(sleep):
    handler = ScriptedHandler(httpx.Response(200, json={"data": "not a list"}))
    client = make_client(handler, sleep)

    with pytest.raises(DecodeError):
        await client.get("/", data_type=list[Employee])

    assert handler.calls == 1


@pytest.mark.parametrize("missing", ["employee_age", "employee_title", "employee_email"])
async def test_incomplete_employee_is_a_decode_error(sleep, missing):
    record = make_employee("1", "John Doe", 50000)
    del record[missing]
    handler = ScriptedHandler(httpx.Response(200, json={"data": record, "status": "ok"}))
    client = make_client(handler, sleep)

    with pytest.raises(DecodeError):
        await client.get("/1", data_type=Employee)

    assert handler.calls == 1


async def test_non_json_body_is_a_decode_error(sleep):
    handler = ScriptedHandler(httpx.Response(200, text="<html>oops</html>"))
    client = make_client(handler, sleep)

    with pytest.raises(DecodeError):
        await client.get("/")

    assert sleep.delays == []


async def test_missing_data_decodes_as_none(sleep):
    handler = ScriptedHandler(httpx.Response(200, json={"status": "ok"}))
    client = make_client(handler, sleep)

    envelope = await client.get("/", data_type=list[Employee])

    assert envelope.data is None
    assert envelope.status == "ok"


async def test_post_and_delete_send_json_bodies(sleep):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"data": True, "status": "ok"})

    client = make_client(handler, sleep)

    await client.post("", body={"name": "Jane Doe", "salary": 1, "age": 20, "title": "QA"})
    envelope = await client.delete("", body={"name": "Jane Doe"}, data_type=bool)

    assert envelope.data is True
    assert seen == [
        ("POST", "/api/v1/employee", {"name": "Jane Doe", "salary": 1, "age": 20, "title": "QA"}),
        ("DELETE", "/api/v1/employee", {"name": "Jane Doe"}),
    ]


@pytest.mark.parametrize(
    "base_url", ["http://upstream.test/api/v1/employee", "http://upstream.test/api/v1/employee/"]
)
async def test_empty_path_targets_base_url_exactly(sleep, base_url):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=ENVELOPE)

    client = make_client(handler, sleep)
    client.base_url = base_url

    await client.get("")
    await client.get("/42")

    assert seen == [
        "http://upstream.test/api/v1/employee",
        "http://upstream.test/api/v1/employee/42",
    ]
