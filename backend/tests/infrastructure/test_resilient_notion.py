"""Resilient Notion Client — retry, backoff, Retry-After, error mapping.

Tests:
    - Successful query posts page_size/start_cursor to databases/{id}/query
    - 429 retried after the Retry-After delay
    - 5xx and transport errors retried, then SourceUnavailableError
    - 4xx (other than 429) fails immediately without retry
    - Backoff grows exponentially, capped, with ±25% jitter

Design Decisions:
    - Real notion_client.AsyncClient over an httpx.MockTransport: exercises the
      SDK's own error parsing instead of hand-built exceptions
    - asyncio.sleep patched: retries run instantly
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from notion_client import AsyncClient

from statusboard.core.errors import SourceUnavailableError
from statusboard.infrastructure.resilient_notion import ResilientNotionClient

OK_BODY = {"object": "list", "results": [], "has_more": False, "next_cursor": None}


def _error(status, code, headers=None):
    body = {"object": "error", "status": status, "code": code, "message": code}
    return httpx.Response(status, json=body, headers=headers)


class ScriptedTransport:
    """Returns scripted responses in order, recording every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(script: ScriptedTransport, max_retries=3) -> ResilientNotionClient:
    sdk = AsyncClient(
        auth="secret",
        retry=False,
        client=httpx.AsyncClient(transport=httpx.MockTransport(script)),
    )
    return ResilientNotionClient(token="secret", max_retries=max_retries, client=sdk)


@pytest.fixture
def sleep(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr("asyncio.sleep", mock)
    return mock


async def test_query_success(sleep):
    script = ScriptedTransport(httpx.Response(200, json=OK_BODY))
    client = _client(script)
    response = await client.query_database("db-1", start_cursor="c1", page_size=50)
    assert response == OK_BODY
    [request] = script.requests
    assert request.method == "POST"
    assert request.url.path == "/v1/databases/db-1/query"
    assert json.loads(request.content) == {"page_size": 50, "start_cursor": "c1"}
    sleep.assert_not_awaited()
    await client.aclose()


async def test_first_page_sends_no_cursor(sleep):
    script = ScriptedTransport(httpx.Response(200, json=OK_BODY))
    client = _client(script)
    await client.query_database("db-1")
    assert json.loads(script.requests[0].content) == {"page_size": 100}


async def test_rate_limit_honours_retry_after(sleep):
    script = ScriptedTransport(
        _error(429, "rate_limited", headers={"retry-after": "2"}),
        httpx.Response(200, json=OK_BODY),
    )
    client = _client(script)
    assert await client.query_database("db-1") == OK_BODY
    sleep.assert_awaited_once_with(2.0)


async def test_rate_limit_exhausted_carries_retry_hint(sleep):
    script = ScriptedTransport(
        *[_error(429, "rate_limited", headers={"retry-after": "1"}) for _ in range(3)],
    )
    client = _client(script, max_retries=2)
    with pytest.raises(SourceUnavailableError) as exc_info:
        await client.query_database("db-1")
    assert exc_info.value.context.retry_after_ms == 1000
    assert exc_info.value.source_id == "db-1"
    assert len(script.requests) == 3


async def test_server_error_retried_then_succeeds(sleep):
    script = ScriptedTransport(
        _error(500, "internal_server_error"),
        _error(503, "service_unavailable"),
        httpx.Response(200, json=OK_BODY),
    )
    client = _client(script)
    assert await client.query_database("db-1") == OK_BODY
    assert sleep.await_count == 2


async def test_server_error_exhausts_retries(sleep):
    script = ScriptedTransport(*[_error(500, "internal_server_error") for _ in range(3)])
    client = _client(script, max_retries=2)
    with pytest.raises(SourceUnavailableError, match="transient failure"):
        await client.query_database("db-1")
    assert len(script.requests) == 3
    assert sleep.await_count == 2


async def test_unparsable_gateway_error_is_transient(sleep):
    script = ScriptedTransport(
        httpx.Response(502, text="<html>Bad gateway</html>"),
        httpx.Response(200, json=OK_BODY),
    )
    client = _client(script)
    assert await client.query_database("db-1") == OK_BODY
    assert len(script.requests) == 2


async def test_transport_error_is_transient(sleep):
    script = ScriptedTransport(
        httpx.ConnectError("connection refused"),
        httpx.Response(200, json=OK_BODY),
    )
    client = _client(script)
    assert await client.query_database("db-1") == OK_BODY
    sleep.assert_awaited_once()


async def test_client_error_not_retried(sleep):
    script = ScriptedTransport(_error(404, "object_not_found"))
    client = _client(script)
    with pytest.raises(SourceUnavailableError, match="object_not_found"):
        await client.query_database("db-1")
    assert len(script.requests) == 1
    sleep.assert_not_awaited()


async def test_unauthorized_not_retried(sleep):
    script = ScriptedTransport(_error(401, "unauthorized"))
    client = _client(script)
    with pytest.raises(SourceUnavailableError):
        await client.query_database("db-1")
    assert len(script.requests) == 1


def test_backoff_exponential_with_jitter_and_cap():
    client = ResilientNotionClient(
        token="secret", base_delay_ms=100, max_delay_ms=1000,
        client=AsyncClient(auth="secret", retry=False),
    )
    for attempt, nominal in [(0, 100), (1, 200), (2, 400), (5, 1000)]:
        delay = client._backoff(attempt)
        assert nominal * 0.75 <= delay <= nominal * 1.25
