"""Application wiring: public endpoints, request ids, legacy mode, lifespan."""

from __future__ import annotations

import json
from pathlib import Path

from sqlalchemy.exc import OperationalError

from tests.helpers import create_key, creds, running_app


class TestPublicEndpoints:
    """Diagnostic endpoints never require credentials."""

    async def test_health(self, api):
        await create_key(api.client)  # close bootstrap

        response = await api.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_api_health_reports_mode(self, api):
        await create_key(api.client)

        response = await api.client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["auth_mode"] == "dual-credential"

    async def test_index_describes_dual_credential_headers(self, api):
        await create_key(api.client)

        response = await api.client.get("/api")

        assert response.status_code == 200
        body = response.json()
        assert body["authentication"]["mode"] == "dual-credential"
        assert "x-client-id" in body["authentication"]["headers"]
        assert "GET /api/incidents" in body["endpoints"]


class TestRequestId:
    """X-Request-Id is echoed or generated."""

    async def test_echoed(self, api):
        response = await api.client.get("/health", headers={"X-Request-Id": "req-123"})

        assert response.headers["X-Request-Id"] == "req-123"

    async def test_generated(self, api):
        response = await api.client.get("/health")

        assert response.headers["X-Request-Id"]

    async def test_in_error_body(self, api):
        await create_key(api.client)

        response = await api.client.get("/api/risks", headers={"X-Request-Id": "req-err"})

        assert response.json()["error"]["request_id"] == "req-err"


class TestUnmatchedRoutes:
    """Requests that match no route never reach a handler or leak data."""

    async def test_trailing_slash_not_redirected(self, api):
        admin = await create_key(api.client)
        await api.client.post(
            "/api/incidents", json={"id": "i-1", "title": "Spill"}, headers=creds(admin)
        )

        response = await api.client.get("/api/incidents/")

        assert response.status_code == 404
        assert "location" not in response.headers
        assert "Spill" not in response.text

    async def test_unsupported_method_discloses_nothing(self, api):
        await create_key(api.client)

        response = await api.client.patch("/api/incidents", json={"title": "x"})

        assert response.status_code == 405
        assert response.json() == {"detail": "Method Not Allowed"}


class TestLegacyMode:
    """Static legacy key supersedes dual-credential mode."""

    async def test_header_and_query_key(self, make_settings):
        async with running_app(make_settings(api_key="legacy-secret")) as ctx:
            by_header = await ctx.client.get("/api/risks", headers={"x-api-key": "legacy-secret"})
            by_query = await ctx.client.get("/api/risks", params={"api_key": "legacy-secret"})
            wrong = await ctx.client.get("/api/risks", headers={"x-api-key": "nope"})
            index = await ctx.client.get("/api")

        assert by_header.status_code == 200
        assert by_query.status_code == 200
        assert wrong.status_code == 401
        assert wrong.json()["error"]["code"] == "invalid_credentials"
        assert index.json()["authentication"]["mode"] == "legacy"
        assert "x-api-key" in index.json()["authentication"]["headers"]

    async def test_legacy_key_can_write(self, make_settings):
        async with running_app(make_settings(api_key="legacy-secret")) as ctx:
            response = await ctx.client.post(
                "/api/incidents",
                json={"id": "i-1", "title": "Spill"},
                headers={"x-api-key": "legacy-secret"},
            )

        assert response.status_code == 200
        assert response.json()["created_by"] is None


class TestStoreUnavailable:
    """Store failures surface as 503, never as bad credentials."""

    async def test_count_failure_is_503(self, api):
        async def broken_count() -> int:
            raise OperationalError("SELECT count(*)", {}, Exception("disk I/O error"))

        api.app.state.key_store.count_active_keys = broken_count

        response = await api.client.get("/api/risks")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "store_unavailable"


class TestProvisioning:
    """First-boot key provisioning in the lifespan."""

    async def test_initial_key_written_and_usable(self, make_settings, tmp_path: Path):
        data_dir = tmp_path / "data"
        settings = make_settings(provision_initial_key=True, data_dir=str(data_dir))

        async with running_app(settings) as ctx:
            credentials = json.loads((data_dir / "credentials.json").read_text())

            listing = await ctx.client.get("/api/api-keys", headers=creds(credentials))

        assert listing.status_code == 200
        items = listing.json()["items"]
        assert len(items) == 1
        assert items[0]["name"] == "Initial Admin Key"
        assert items[0]["access_type"] == "full"

    async def test_no_provisioning_in_legacy_mode(self, make_settings, tmp_path: Path):
        data_dir = tmp_path / "data"
        settings = make_settings(
            api_key="legacy-secret", provision_initial_key=True, data_dir=str(data_dir)
        )

        async with running_app(settings):
            pass

        assert not (data_dir / "credentials.json").exists()
