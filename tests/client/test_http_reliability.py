"""Tests for client HTTP retry and error fallback behavior."""

from __future__ import annotations

import httpx
import pytest

from riskvisio_client import RiskVisioClient
from riskvisio_client._http import RetryPolicy
from riskvisio_client.errors import RiskVisioClientError, StoreUnavailableError

BASE = "http://localhost:8080"


def make_client(max_retries: int) -> RiskVisioClient:
    return RiskVisioClient(
        endpoint_url=BASE,
        client_id="key_abcdefghijklmnop",
        client_secret="secret_0123456789abcdef0123456789abcdef",
        max_retries=max_retries,
    )


@pytest.mark.asyncio
async def test_get_retries_on_transient_503(httpx_mock):
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE}/api/factories",
        status_code=503,
        json={"error": {"code": "store_unavailable", "message": "Credential store unavailable"}},
    )
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE}/api/factories",
        status_code=200,
        json={"data": [], "count": 0},
    )

    async with make_client(max_retries=1) as client:
        result = await client.list_factories()
        assert result.count == 0

    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_get_retries_on_429(httpx_mock):
    httpx_mock.add_response(method="GET", url=f"{BASE}/api/factories", status_code=429, json={})
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE}/api/factories",
        json={"data": [], "count": 0},
    )

    async with make_client(max_retries=2) as client:
        await client.list_factories()

    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_post_is_not_retried(httpx_mock):
    httpx_mock.add_response(
        method="POST",
        url=f"{BASE}/api/incidents",
        status_code=503,
        json={"error": {"code": "store_unavailable", "message": "Credential store unavailable"}},
    )

    async with make_client(max_retries=3) as client:
        with pytest.raises(StoreUnavailableError):
            await client.save_record("incidents", {"title": "x"})

    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_delete_retries_on_transport_error(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    httpx_mock.add_response(
        method="DELETE",
        url=f"{BASE}/api/api-keys/k-1",
        json={"ok": True},
    )

    async with make_client(max_retries=1) as client:
        body = await client.http.delete("/api/api-keys/k-1")

    assert body == {"ok": True}
    assert len(httpx_mock.get_requests()) == 2


@pytest.mark.asyncio
async def test_transport_error_raised_after_retries(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))

    async with make_client(max_retries=1) as client:
        with pytest.raises(httpx.ConnectError):
            await client.list_factories()


@pytest.mark.asyncio
async def test_non_json_error_body(httpx_mock):
    httpx_mock.add_response(
        method="GET",
        url=f"{BASE}/api/factories",
        status_code=502,
        text="<html>Bad Gateway</html>",
    )

    async with make_client(max_retries=0) as client:
        with pytest.raises(RiskVisioClientError) as exc_info:
            await client.list_factories()

    assert exc_info.value.status_code == 502
    assert "non-JSON" in exc_info.value.message
    assert exc_info.value.details["raw_response_snippet"] == "<html>Bad Gateway</html>"
    assert exc_info.value.details["raw_response_truncated"] is False


class TestRetryPolicy:
    """Backoff and eligibility rules."""

    def test_delay_doubles_then_caps(self):
        policy = RetryPolicy()

        delays = [policy.delay(n) for n in range(6)]

        assert delays[0] == pytest.approx(0.2)
        assert delays[1] == pytest.approx(0.4)
        assert max(delays) == 1.5

    def test_only_idempotent_methods_repeat(self):
        policy = RetryPolicy(max_retries=2)

        assert policy.attempts_for("get") == 3
        assert policy.attempts_for("DELETE") == 3
        assert policy.attempts_for("POST") == 1

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503])
    def test_transient_statuses(self, status_code):
        assert RetryPolicy().should_retry_status(status_code)

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 409])
    def test_client_errors_not_retried(self, status_code):
        assert not RetryPolicy().should_retry_status(status_code)
