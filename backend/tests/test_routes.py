"""
PlaceShare Backend — HTTP Route Tests
=======================================

What:  End-to-end request tests through the FastAPI app.
How:   HTTPX AsyncClient with ASGITransport; the database session and the
       place service are overridden by the test_client fixture.

What we test:
    ✅ Status codes and envelopes for every place and user route
    ✅ X-User-Id handling (missing, malformed, non-owner)
    ✅ Error bodies carry error, message and request_id
"""

from uuid import uuid4

import pytest

from app.exceptions import GeocoderUnavailableError, GeocodingError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def place_form(**overrides):
    data = {
        "title": "Empire State Building",
        "description": "A famous sky scraper",
        "address": "1 Main St",
    }
    data.update(overrides)
    return data


def png_file(content=PNG_BYTES, content_type="image/png"):
    return {"image": ("place.png", content, content_type)}


async def post_place(client, user_id, data=None, files=None):
    return await client.post(
        "/api/places",
        data=data or place_form(),
        files=files or png_file(),
        headers={"X-User-Id": str(user_id)},
    )


class TestPlaceRoutes:

    @pytest.mark.asyncio
    async def test_create_place(self, test_client, user):
        response = await post_place(test_client, user.id)

        assert response.status_code == 201
        place = response.json()["place"]
        assert place["creator"] == str(user.id)
        assert place["location"] == {"latitude": 40.0, "longitude": -74.0}
        assert place["image"].startswith("images/")
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_create_requires_user_header(self, test_client):
        response = await test_client.post("/api/places", data=place_form(), files=png_file())

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_create_rejects_malformed_user_header(self, test_client):
        response = await post_place(test_client, "not-a-uuid")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_short_description_is_422(self, test_client, user):
        response = await post_place(test_client, user.id, data=place_form(description="abc"))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_gif_is_415(self, test_client, user):
        response = await post_place(test_client, user.id, files=png_file(b"GIF89a....", "image/gif"))

        assert response.status_code == 415
        body = response.json()
        assert body["message"] == "Invalid mime type! Allowed types: png, jpeg, jpg"
        assert body["request_id"]

    @pytest.mark.asyncio
    async def test_create_oversized_is_413(self, test_client, user):
        response = await post_place(test_client, user.id, files=png_file(b"\x00" * 600_000))
        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_unresolvable_address_is_422(self, test_client, stub_geocoder, user):
        stub_geocoder.error = GeocodingError()

        response = await post_place(test_client, user.id)

        assert response.status_code == 422
        assert response.json()["error"] == "geocoding_error"

    @pytest.mark.asyncio
    async def test_open_geocoder_circuit_is_503(self, test_client, stub_geocoder, user):
        stub_geocoder.error = GeocoderUnavailableError(recovery_time=12)

        response = await post_place(test_client, user.id)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "12"

    @pytest.mark.asyncio
    async def test_create_for_unknown_user_is_404(self, test_client):
        response = await post_place(test_client, uuid4())
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_place(self, test_client, user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.get(f"/api/places/{created['id']}")

        assert response.status_code == 200
        assert response.json()["place"]["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_get_missing_place_is_404(self, test_client):
        response = await test_client.get(f"/api/places/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Could not find a place for the provided id."

    @pytest.mark.asyncio
    async def test_get_places_by_user(self, test_client, user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.get(f"/api/places/user/{user.id}")

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["places"]] == [created["id"]]

    @pytest.mark.asyncio
    async def test_update_place(self, test_client, user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.patch(
            f"/api/places/{created['id']}",
            json={"title": "Renamed", "description": "Still a sky scraper"},
            headers={"X-User-Id": str(user.id)},
        )

        assert response.status_code == 200
        assert response.json()["place"]["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_update_by_non_owner_is_401(self, test_client, user, other_user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.patch(
            f"/api/places/{created['id']}",
            json={"title": "Renamed", "description": "Still a sky scraper"},
            headers={"X-User-Id": str(other_user.id)},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "You are not allowed to edit this place."

    @pytest.mark.asyncio
    async def test_delete_place(self, test_client, user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.delete(
            f"/api/places/{created['id']}",
            headers={"X-User-Id": str(user.id)},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Deleted place."
        assert response.json()["place"]["id"] == created["id"]
        follow_up = await test_client.get(f"/api/places/{created['id']}")
        assert follow_up.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_by_non_owner_is_401(self, test_client, user, other_user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.delete(
            f"/api/places/{created['id']}",
            headers={"X-User-Id": str(other_user.id)},
        )

        assert response.status_code == 401


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_register_and_get_user(self, test_client):
        response = await test_client.post(
            "/api/users", json={"name": "Max", "email": "max@example.com"}
        )
        assert response.status_code == 201
        user = response.json()["user"]

        fetched = await test_client.get(f"/api/users/{user['id']}")

        assert fetched.status_code == 200
        assert fetched.json()["user"]["email"] == "max@example.com"

    @pytest.mark.asyncio
    async def test_register_duplicate_is_409(self, test_client, user):
        response = await test_client.post(
            "/api/users", json={"name": "Ada again", "email": "ada@example.com"}
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_register_invalid_email_is_422(self, test_client):
        response = await test_client.post("/api/users", json={"name": "Max", "email": "not-an-email"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_user_lists_created_places(self, test_client, user):
        created = (await post_place(test_client, user.id)).json()["place"]

        response = await test_client.get("/api/users")

        users = {u["id"]: u for u in response.json()["users"]}
        assert users[str(user.id)]["places"] == [created["id"]]

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, test_client):
        response = await test_client.get(f"/api/users/{uuid4()}")
        assert response.status_code == 404


class TestHealthRoute:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["status"] in {"healthy", "degraded"}
