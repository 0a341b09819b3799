"""Tests for the invitations endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from visitgate.models.location import Location

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _create(client: AsyncClient, headers: dict, location: Location, **extra) -> dict:
    response = await client.post(
        "/api/v1/invitations",
        json={"email": "guest@x.com", "location_id": str(location.id), **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# POST /api/v1/invitations
# ---------------------------------------------------------------------------


class TestCreateInvitation:
    async def test_create(self, client: AsyncClient, host_headers: dict, host_user, location) -> None:
        data = await _create(client, host_headers, location)
        assert data["status"] == "PENDING"
        assert data["invite_date"] == "2025-03-12"
        assert data["qr_token"] is None
        assert data["guest"]["email"] == "guest@x.com"
        assert data["guest"]["profile_completed"] is False
        assert data["host"]["id"] == str(host_user.id)
        assert data["location"]["name"] == location.name

    async def test_invalid_date(self, client: AsyncClient, host_headers: dict, location) -> None:
        response = await client.post(
            "/api/v1/invitations",
            json={"email": "guest@x.com", "location_id": str(location.id), "invite_date": "2025-13-01"},
            headers=host_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_date"

    async def test_invalid_email(self, client: AsyncClient, host_headers: dict, location) -> None:
        response = await client.post(
            "/api/v1/invitations",
            json={"email": "nope", "location_id": str(location.id)},
            headers=host_headers,
        )
        assert response.status_code == 422
        assert response.json() == {"error": "validation_error", "detail": "Email address is not valid"}

    async def test_unknown_location(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.post(
            "/api/v1/invitations",
            json={"email": "guest@x.com", "location_id": str(uuid.uuid4())},
            headers=host_headers,
        )
        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "detail": "Location not found"}

    async def test_requires_auth(self, client: AsyncClient, location) -> None:
        response = await client.post(
            "/api/v1/invitations",
            json={"email": "guest@x.com", "location_id": str(location.id)},
        )
        assert response.status_code in (401, 403)


# ---------------------------------------------------------------------------
# Listing and ownership
# ---------------------------------------------------------------------------


class TestListInvitations:
    async def test_filter_by_date(self, client: AsyncClient, host_headers: dict, location) -> None:
        await _create(client, host_headers, location)
        await _create(client, host_headers, location, invite_date="2025-03-20")

        response = await client.get("/api/v1/invitations", params={"date": "2025-03-20"}, headers=host_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["invite_date"] == "2025-03-20"

    async def test_bad_date_filter(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.get("/api/v1/invitations", params={"date": "March 3"}, headers=host_headers)
        assert response.status_code == 422

    async def test_hosts_only_see_their_own(
        self, client: AsyncClient, host_headers: dict, security_headers: dict, other_host, location
    ) -> None:
        from visitgate.auth.jwt import create_token_pair

        other_headers = {
            "Authorization": f"Bearer {create_token_pair(str(other_host.id), 'host')['access_token']}"
        }
        mine = await _create(client, host_headers, location)
        await _create(client, other_headers, location)

        response = await client.get("/api/v1/invitations", headers=host_headers)
        assert [i["id"] for i in response.json()["items"]] == [mine["id"]]

        response = await client.get("/api/v1/invitations", headers=security_headers)
        assert response.json()["total"] == 2

        response = await client.get(f"/api/v1/invitations/{mine['id']}", headers=other_headers)
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    async def test_activate(self, client: AsyncClient, host_headers: dict, location) -> None:
        created = await _create(client, host_headers, location)
        response = await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ACTIVATED"
        assert len(data["qr_token"]) == 32

    async def test_activate_twice(self, client: AsyncClient, host_headers: dict, location) -> None:
        created = await _create(client, host_headers, location)
        await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        response = await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "already_activated"

    async def test_activate_past_date(self, client: AsyncClient, host_headers: dict, location) -> None:
        created = await _create(client, host_headers, location, invite_date="2025-03-01")
        response = await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "expired"

    async def test_expire_and_reissue(self, client: AsyncClient, host_headers: dict, location) -> None:
        created = await _create(client, host_headers, location)
        activated = (
            await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        ).json()

        response = await client.post(f"/api/v1/invitations/{created['id']}/expire", headers=host_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "EXPIRED"
        assert response.json()["qr_token"] is None

        response = await client.post(f"/api/v1/invitations/{created['id']}/reissue", headers=host_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVATED"
        assert response.json()["qr_token"] != activated["qr_token"]

    async def test_lazy_expiry_on_read(self, client: AsyncClient, host_headers: dict, location, clock) -> None:
        created = await _create(client, host_headers, location)
        await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        clock.advance(days=8)

        response = await client.get(f"/api/v1/invitations/{created['id']}", headers=host_headers)
        assert response.json()["status"] == "EXPIRED"

    async def test_unknown_id(self, client: AsyncClient, host_headers: dict) -> None:
        response = await client.post(f"/api/v1/invitations/{uuid.uuid4()}/activate", headers=host_headers)
        assert response.status_code == 404

    async def test_acceptance_link(self, client: AsyncClient, host_headers: dict, location) -> None:
        created = await _create(client, host_headers, location)
        response = await client.post(f"/api/v1/invitations/{created['id']}/acceptance-link", headers=host_headers)
        assert response.status_code == 200
        assert response.json()["token"].count(".") == 2

    async def test_sweep(self, client: AsyncClient, host_headers: dict, admin_headers: dict, location, clock) -> None:
        created = await _create(client, host_headers, location)
        await client.post(f"/api/v1/invitations/{created['id']}/activate", headers=host_headers)
        clock.advance(days=7, minutes=1)

        response = await client.post("/api/v1/invitations/expire-sweep", headers=admin_headers)
        assert response.json() == {"expired": 1}
