import pytest
from httpx import AsyncClient

from heritage_whisper.notifications import create_unsubscribe_token
from heritage_whisper.server.core.config import settings

pytestmark = pytest.mark.asyncio


async def invite(client: AsyncClient, email="sam@example.com", level="viewer") -> dict:
    response = await client.post(
        "/api/v1/family/members", json={"email": email, "name": "Sam", "permission_level": level}
    )
    assert response.status_code == 201
    return response.json()


def token_from(body: dict) -> str:
    return body["invite_url"].split("token=")[1]


async def test_invite_sends_email(client: AsyncClient, resend):
    body = await invite(client)

    assert body["email_sent"] is True
    assert resend.subjects() == ["Margaret has invited you to view their life stories"]

    members = (await client.get("/api/v1/family/members")).json()
    assert [m["email"] for m in members["members"]] == ["sam@example.com"]


async def test_duplicate_invite_conflicts(client: AsyncClient):
    await invite(client)

    response = await client.post("/api/v1/family/members", json={"email": "sam@example.com"})

    assert response.status_code == 409


async def test_verify_sets_session_cookie(client: AsyncClient):
    body = await invite(client)

    response = await client.get("/api/v1/family/verify", params={"token": token_from(body)})

    assert response.status_code == 200
    assert response.json()["storyteller_name"] == "Margaret"
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("family_session=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age=7776000" in set_cookie

    session_token = response.cookies["family_session"]
    response = await client.get(
        "/api/v1/family/session", headers={"Authorization": f"Bearer {session_token}"}
    )
    assert response.status_code == 200
    assert response.json()["member_name"] == "Sam"


async def test_family_session_required(client: AsyncClient):
    client.cookies.clear()

    response = await client.get("/api/v1/family/session")

    assert response.status_code == 401


async def test_viewer_cannot_submit_prompt(client: AsyncClient):
    body = await invite(client)
    verify = await client.get("/api/v1/family/verify", params={"token": token_from(body)})
    headers = {"Authorization": f"Bearer {verify.cookies['family_session']}"}

    response = await client.post(
        "/api/v1/family/prompts", json={"prompt_text": "What was your first car?"}, headers=headers
    )

    assert response.status_code == 403


async def test_verify_rate_limited_by_ip(client: AsyncClient):
    for _ in range(5):
        response = await client.get("/api/v1/family/verify", params={"token": "unknown"})
        assert response.status_code == 404

    response = await client.get("/api/v1/family/verify", params={"token": "unknown"})

    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0


class TestUnsubscribe:
    async def test_missing_token_redirects_with_error(self, client: AsyncClient):
        response = await client.get("/api/v1/family/unsubscribe")

        assert response.status_code == 302
        assert response.headers["location"] == "http://localhost:3000/unsubscribe?error=missing-token"

    async def test_success_redirect_carries_name(self, client: AsyncClient):
        body = await invite(client)
        token = create_unsubscribe_token(body["member"]["id"], settings.family.unsubscribe_secret)

        response = await client.get("/api/v1/family/unsubscribe", params={"token": token})

        assert response.status_code == 302
        assert response.headers["location"] == "http://localhost:3000/unsubscribe?status=success&name=Sam"
