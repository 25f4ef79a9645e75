"""Tests for providers/."""

from __future__ import annotations

import httpx
import pytest

from credaudit.errors import ConfigurationError
from credaudit.models.lookup import LookupStatus
from credaudit.providers.base import BaseLookupClient, get_lookup_client
from credaudit.providers.hibp import HIBPClient

BREACH_JSON = [
    {
        "Name": "Adobe",
        "Title": "Adobe",
        "Domain": "adobe.com",
        "BreachDate": "2013-10-04",
        "AddedDate": "2013-12-04T00:00:00Z",
        "DataClasses": ["Email addresses", "Password hints", "Passwords", "Usernames"],
        "Description": "In October 2013, 153 million Adobe accounts were breached.",
        "PwnCount": 152445165,
    },
    {
        "Name": "Canva",
        "Title": "Canva",
        "Domain": "canva.com",
        "BreachDate": "2019-05-24",
        "DataClasses": ["Email addresses", "Names"],
    },
]


def make_client(handler, sleeps=None, **overrides) -> HIBPClient:
    async def record_sleep(seconds: float) -> None:
        if sleeps is not None:
            sleeps.append(seconds)

    config = {"api_key": "test-key", "max_retries": 3, "retry_base_delay_seconds": 2}
    config.update(overrides)
    return HIBPClient(config, sleep=record_sleep, transport=httpx.MockTransport(handler))


class TestGetLookupClient:
    def test_hibp_provider(self):
        client = get_lookup_client({"lookup": {"provider": "hibp"}})
        assert client.name == "hibp"

    def test_default_provider(self):
        assert get_lookup_client({}).name == "hibp"

    def test_invalid_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown"):
            get_lookup_client({"lookup": {"provider": "invalid"}})


class TestHIBPClient:
    @pytest.mark.asyncio
    async def test_not_found(self):
        client = make_client(lambda request: httpx.Response(404))
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.NOT_FOUND
        assert result.resolved

    @pytest.mark.asyncio
    async def test_found_parses_breaches(self):
        client = make_client(lambda request: httpx.Response(200, json=BREACH_JSON))
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.FOUND
        assert [b.name for b in result.breaches] == ["Adobe", "Canva"]
        adobe = result.breaches[0]
        assert adobe.date == "2013-10-04"
        assert "Passwords" in adobe.data_types
        assert adobe.pwn_count == 152445165
        assert result.breaches[1].description is None

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(404)

        client = make_client(handler, user_agent="credaudit-tests")
        await client.lookup("a+b@x.com")

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path.endswith("/breachedaccount/a+b@x.com")
        assert request.url.params["truncateResponse"] == "false"
        assert request.headers["hibp-api-key"] == "test-key"
        assert request.headers["user-agent"] == "credaudit-tests"

    @pytest.mark.asyncio
    async def test_other_status_is_error(self):
        client = make_client(lambda request: httpx.Response(503))
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.ERROR
        assert "503" in result.error
        assert not result.resolved

    @pytest.mark.asyncio
    async def test_unauthorized_is_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        client = make_client(handler)
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.ERROR
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.ERROR
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_malformed_json_is_error(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.ERROR

    @pytest.mark.asyncio
    async def test_wrongly_typed_breach_fields_are_error(self):
        body = [{"Name": 123, "PwnCount": "lots"}]
        client = make_client(lambda request: httpx.Response(200, json=body))
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.ERROR
        assert result.error == "Malformed breach data"
        assert not result.resolved

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("CREDAUDIT_TEST_KEY", raising=False)
        client = HIBPClient({"api_key_env": "CREDAUDIT_TEST_KEY"})
        with pytest.raises(ConfigurationError, match="CREDAUDIT_TEST_KEY"):
            await client.lookup("a@x.com")

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("CREDAUDIT_TEST_KEY", "env-key")
        client = HIBPClient({"api_key_env": "CREDAUDIT_TEST_KEY"})
        assert client.require_api_key() == "env-key"


class TestRateLimitRetry:
    @pytest.mark.asyncio
    async def test_exponential_backoff_then_gives_up(self):
        calls = []
        sleeps: list[float] = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        client = make_client(handler, sleeps=sleeps)
        result = await client.lookup_with_retry("a@x.com")

        assert result.status == LookupStatus.RATE_LIMITED
        assert len(calls) == 4
        assert result.attempts == 4
        assert sleeps == [2, 4, 8]

    @pytest.mark.asyncio
    async def test_recovers_after_rate_limit(self):
        responses = [httpx.Response(429), httpx.Response(429), httpx.Response(404)]
        sleeps: list[float] = []
        client = make_client(lambda request: responses.pop(0), sleeps=sleeps)

        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.NOT_FOUND
        assert result.attempts == 3
        assert sleeps == [2, 4]

    def test_backoff_delay_bound(self):
        client = BaseLookupClient({"retry_base_delay_seconds": 1.5})
        assert [client.backoff_delay(i) for i in range(3)] == [1.5, 3.0, 6.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        client = make_client(handler, max_retries=0)
        result = await client.lookup_with_retry("a@x.com")
        assert result.status == LookupStatus.RATE_LIMITED
        assert len(calls) == 1
