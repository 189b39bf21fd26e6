"""
Tourbook Backend — Users and Bookings API Tests
================================================

What we test:
    ✅ Emails are lowercased and unique
    ✅ Deactivated users disappear from list and get
    ✅ Bookings default to the tour's price
    ✅ Bookings for unknown tours are rejected
"""

import uuid

import pytest


class TestUsers:
    @pytest.mark.asyncio
    async def test_create_user_lowercases_email(self, test_client, user_payload):
        response = await test_client.post("/api/v1/users", json=user_payload)

        assert response.status_code == 201
        user = response.json()["data"]["data"]
        assert user["email"] == "laura@example.com"
        assert user["role"] == "user"
        assert user["photo"] == "default.jpg"
        assert "active" not in user

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, test_client, create_user):
        await create_user(email="laura@example.com")
        response = await test_client.post(
            "/api/v1/users", json={"name": "Other Laura", "email": "LAURA@example.com"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "duplicate_field"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("changes", [{"email": "not-an-email"}, {"role": "emperor"}])
    async def test_invalid_user_is_rejected(self, test_client, user_payload, changes):
        response = await test_client.post("/api/v1/users", json={**user_payload, **changes})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_deactivated_user_is_hidden(self, test_client, create_user):
        kept = await create_user(email="kept@example.com")
        gone = await create_user(email="gone@example.com")

        response = await test_client.patch(f"/api/v1/users/{gone['id']}", json={"active": False})
        assert response.status_code == 200

        listing = (await test_client.get("/api/v1/users")).json()
        assert [u["id"] for u in listing["data"]["data"]] == [kept["id"]]
        assert (await test_client.get(f"/api/v1/users/{gone['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_filter_by_role(self, test_client):
        await test_client.post("/api/v1/users", json={"name": "Guide", "email": "g@example.com", "role": "guide"})
        await test_client.post("/api/v1/users", json={"name": "User", "email": "u@example.com"})

        response = await test_client.get("/api/v1/users?role=guide")

        assert [u["name"] for u in response.json()["data"]["data"]] == ["Guide"]

    @pytest.mark.asyncio
    async def test_delete_user(self, test_client, create_user):
        user = await create_user()

        assert (await test_client.delete(f"/api/v1/users/{user['id']}")).status_code == 204
        assert (await test_client.get(f"/api/v1/users/{user['id']}")).status_code == 404


class TestBookings:
    @pytest.mark.asyncio
    async def test_price_defaults_to_tour_price(self, test_client, create_tour, create_user):
        tour = await create_tour(price=497)
        user = await create_user()

        response = await test_client.post(
            "/api/v1/bookings", json={"tourId": tour["id"], "userId": user["id"]}
        )

        assert response.status_code == 201
        booking = response.json()["data"]["data"]
        assert booking["price"] == 497
        assert booking["paid"] is True

    @pytest.mark.asyncio
    async def test_explicit_price_is_kept(self, test_client, create_tour, create_user):
        tour = await create_tour(price=497)
        user = await create_user()

        response = await test_client.post(
            "/api/v1/bookings",
            json={"tourId": tour["id"], "userId": user["id"], "price": 450, "paid": False},
        )

        booking = response.json()["data"]["data"]
        assert booking["price"] == 450
        assert booking["paid"] is False

    @pytest.mark.asyncio
    async def test_unknown_tour_is_404(self, test_client, create_user):
        user = await create_user()
        response = await test_client.post(
            "/api/v1/bookings", json={"tourId": str(uuid.uuid4()), "userId": user["id"]}
        )

        assert response.status_code == 404
        assert response.json()["message"].startswith("No tour found with ID")

    @pytest.mark.asyncio
    async def test_filter_unpaid_and_update(self, test_client, create_tour, create_user):
        tour = await create_tour()
        user = await create_user()
        paid = (await test_client.post(
            "/api/v1/bookings", json={"tourId": tour["id"], "userId": user["id"]}
        )).json()["data"]["data"]
        unpaid = (await test_client.post(
            "/api/v1/bookings", json={"tourId": tour["id"], "userId": user["id"], "paid": False}
        )).json()["data"]["data"]

        listing = (await test_client.get("/api/v1/bookings?paid=false")).json()
        assert [b["id"] for b in listing["data"]["data"]] == [unpaid["id"]]

        response = await test_client.patch(f"/api/v1/bookings/{unpaid['id']}", json={"paid": True})
        assert response.json()["data"]["data"]["paid"] is True
        assert (await test_client.get("/api/v1/bookings?paid=true")).json()["results"] == 2
        assert (await test_client.delete(f"/api/v1/bookings/{paid['id']}")).status_code == 204
