import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestShares:
    async def test_share_link_opens_timeline(self, client: AsyncClient):
        await client.post("/api/v1/stories", json={"title": "School", "story_year": 1957})
        created = await client.post("/api/v1/shares", json={"email": "cousin@example.com"})
        assert created.status_code == 201
        share = created.json()
        assert share["share_url"] == f"http://localhost:3000/shared/{share['share_token']}"

        response = await client.get(f"/api/v1/shared/{share['share_token']}")

        assert response.status_code == 200
        body = response.json()
        assert body["owner_name"] == "Margaret"
        assert body["permission_level"] == "view"

    async def test_revoked_link_is_forbidden(self, client: AsyncClient):
        share = (await client.post("/api/v1/shares", json={"email": "cousin@example.com"})).json()
        await client.delete(f"/api/v1/shares/{share['id']}")

        response = await client.get(f"/api/v1/shared/{share['share_token']}")

        assert response.status_code == 403

    async def test_browser_timestamp_expiry(self, client: AsyncClient):
        created = await client.post(
            "/api/v1/shares", json={"email": "cousin@example.com", "expires_at": "2020-01-01T00:00:00.000Z"}
        )
        assert created.status_code == 201
        assert created.json()["expires_at"] == "2020-01-01T00:00:00"

        response = await client.get(f"/api/v1/shared/{created.json()['share_token']}")

        assert response.status_code == 403

    async def test_unknown_link(self, client: AsyncClient):
        assert (await client.get("/api/v1/shared/nope")).status_code == 404


class TestAccount:
    async def test_profile_round_trip(self, client: AsyncClient):
        response = await client.put("/api/v1/account/profile", json={"bio": "Retired machinist"})
        assert response.status_code == 200

        profile = (await client.get("/api/v1/account/profile")).json()
        assert profile["bio"] == "Retired machinist"
        assert profile["email"] == "margaret@example.com"

    async def test_export_data(self, client: AsyncClient):
        await client.post("/api/v1/stories", json={"title": "School"})

        response = await client.get("/api/v1/account/export")

        assert response.status_code == 200
        assert [s["title"] for s in response.json()["stories"]] == ["School"]

    async def test_pdf_export_not_configured(self, client: AsyncClient):
        response = await client.post("/api/v1/export/pdf")

        assert response.status_code == 503
