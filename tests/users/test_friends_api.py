"""Friend requests over HTTP."""

from conftest import auth_headers
from httpx import AsyncClient

from qaforum.db.models import User


async def _request(client: AsyncClient, sender: User, recipient: User) -> dict:
    response = await client.post(f"/friends/request/{recipient.id}", headers=auth_headers(sender))
    assert response.status_code == 201, response.text
    return response.json()["friendship"]


class TestFriendRequests:
    async def test_request_and_accept(self, client: AsyncClient, alice: User, bob: User):
        friendship = await _request(client, alice, bob)
        assert friendship["status"] == "pending"

        response = await client.post(f"/friends/{friendship['id']}/accept", headers=auth_headers(bob))
        assert response.json()["friendship"]["status"] == "accepted"
        assert response.json()["friendship"]["respondedAt"]

        listing = (await client.get("/friends", headers=auth_headers(alice))).json()
        assert listing["friendCount"] == 1
        assert listing["friends"][0]["user"]["name"] == "Bob"
        assert listing["friends"][0]["incoming"] is False

    async def test_pending_does_not_count(self, client: AsyncClient, alice: User, bob: User):
        await _request(client, alice, bob)
        listing = (await client.get("/friends", headers=auth_headers(bob))).json()
        assert listing["friendCount"] == 0
        assert listing["friends"][0]["incoming"] is True

    async def test_only_recipient_accepts(self, client: AsyncClient, alice: User, bob: User):
        friendship = await _request(client, alice, bob)
        response = await client.post(f"/friends/{friendship['id']}/accept", headers=auth_headers(alice))
        assert response.status_code == 403

    async def test_self_request(self, client: AsyncClient, alice: User):
        response = await client.post(f"/friends/request/{alice.id}", headers=auth_headers(alice))
        assert response.status_code == 400

    async def test_duplicate_either_direction(self, client: AsyncClient, alice: User, bob: User):
        await _request(client, alice, bob)
        response = await client.post(f"/friends/request/{alice.id}", headers=auth_headers(bob))
        assert response.status_code == 409

    async def test_unknown_user(self, client: AsyncClient, alice: User):
        response = await client.post("/friends/request/999", headers=auth_headers(alice))
        assert response.status_code == 404
