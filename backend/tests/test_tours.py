"""
Tourbook Backend — Tours API Tests
===================================

What:  /api/v1/tours CRUD, list query features, the top-5-cheap and
       tour-stats reports, and the HTML views.
How:   Real SQLite database (aiosqlite) through the full middleware chain.
"""

import uuid

import pytest


class TestTourCrud:
    @pytest.mark.asyncio
    async def test_create_tour(self, test_client, tour_payload):
        response = await test_client.post("/api/v1/tours", json=tour_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        tour = body["data"]["data"]
        assert tour["name"] == "The Forest Hiker"
        assert tour["slug"] == "the-forest-hiker"
        assert tour["maxGroupSize"] == 25
        assert tour["ratingsAverage"] == 4.5
        assert tour["ratingsQuantity"] == 0
        assert tour["startDates"] == tour_payload["startDates"]
        uuid.UUID(tour["id"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "changes",
        [
            {"name": "Too short"},
            {"difficulty": "extreme"},
            {"price": -10},
            {"duration": 0},
        ],
    )
    async def test_invalid_tour_is_rejected(self, test_client, tour_payload, changes):
        response = await test_client.post("/api/v1/tours", json={**tour_payload, **changes})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "fail"
        assert body["message"].startswith("Invalid input data.")

    @pytest.mark.asyncio
    async def test_discount_must_be_below_price(self, test_client, tour_payload):
        response = await test_client.post(
            "/api/v1/tours", json={**tour_payload, "priceDiscount": 500}
        )

        assert response.status_code == 400
        assert "Discount price should be below regular price" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_duplicate_name_is_rejected(self, test_client, create_tour, tour_payload):
        await create_tour()
        response = await test_client.post("/api/v1/tours", json=tour_payload)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "duplicate_field"
        assert body["message"] == "Duplicate field value. Please use another value!"

    @pytest.mark.asyncio
    async def test_get_tour(self, test_client, create_tour):
        tour = await create_tour()
        response = await test_client.get(f"/api/v1/tours/{tour['id']}")

        assert response.status_code == 200
        assert response.json()["data"]["data"]["id"] == tour["id"]

    @pytest.mark.asyncio
    async def test_unknown_tour_is_404(self, test_client):
        missing = uuid.uuid4()
        response = await test_client.get(f"/api/v1/tours/{missing}")

        assert response.status_code == 404
        assert response.json()["message"] == f"No tour found with ID '{missing}'"

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client):
        response = await test_client.get("/api/v1/tours/not-a-uuid")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_tour_renames_slug(self, test_client, create_tour):
        tour = await create_tour()
        response = await test_client.patch(
            f"/api/v1/tours/{tour['id']}", json={"name": "The Sea Explorer", "price": 497}
        )

        assert response.status_code == 200
        updated = response.json()["data"]["data"]
        assert updated["slug"] == "the-sea-explorer"
        assert updated["price"] == 497
        assert updated["duration"] == tour["duration"]

    @pytest.mark.asyncio
    async def test_update_checks_discount_against_stored_price(self, test_client, create_tour):
        tour = await create_tour()
        response = await test_client.patch(f"/api/v1/tours/{tour['id']}", json={"priceDiscount": 400})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Discount price should be below regular price"
        assert body["details"]["field"] == "priceDiscount"

    @pytest.mark.asyncio
    async def test_delete_tour(self, test_client, create_tour):
        tour = await create_tour()
        response = await test_client.delete(f"/api/v1/tours/{tour['id']}")

        assert response.status_code == 204
        assert response.content == b""
        assert (await test_client.get(f"/api/v1/tours/{tour['id']}")).status_code == 404


class TestTourListing:
    @pytest.fixture
    def seed(self, create_tour):
        async def _seed():
            await create_tour(name="The Forest Hiker", duration=5, price=397, difficulty="easy")
            await create_tour(name="The Sea Explorer", duration=7, price=497, difficulty="medium")
            await create_tour(name="The Snow Adventurer", duration=4, price=997, difficulty="difficult")
            await create_tour(name="The City Wanderer", duration=9, price=1197, difficulty="easy")
        return _seed

    @pytest.mark.asyncio
    async def test_list_envelope(self, test_client, seed):
        await seed()
        body = (await test_client.get("/api/v1/tours")).json()

        assert body["status"] == "success"
        assert body["results"] == 4
        assert len(body["data"]["data"]) == 4

    @pytest.mark.asyncio
    async def test_filter_with_operators(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?price[lt]=1000&duration[gte]=5")

        names = {t["name"] for t in response.json()["data"]["data"]}
        assert names == {"The Forest Hiker", "The Sea Explorer"}

    @pytest.mark.asyncio
    async def test_repeated_whitelisted_filter_is_in(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?duration=5&duration=9")

        assert {t["duration"] for t in response.json()["data"]["data"]} == {5, 9}

    @pytest.mark.asyncio
    async def test_polluted_sort_uses_last_value(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?sort=price&sort=-price")

        prices = [t["price"] for t in response.json()["data"]["data"]]
        assert prices == sorted(prices, reverse=True)

    @pytest.mark.asyncio
    async def test_sort_and_fields(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?sort=price&fields=name,price")

        tours = response.json()["data"]["data"]
        assert [t["price"] for t in tours] == [397, 497, 997, 1197]
        assert set(tours[0]) == {"id", "name", "price"}

    @pytest.mark.asyncio
    async def test_excluded_fields(self, test_client, seed):
        await seed()
        tours = (await test_client.get("/api/v1/tours?fields=-summary,-startDates")).json()["data"]["data"]

        assert "summary" not in tours[0]
        assert "startDates" not in tours[0]
        assert "name" in tours[0]

    @pytest.mark.asyncio
    async def test_pagination(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?sort=price&page=2&limit=3")

        body = response.json()
        assert body["results"] == 1
        assert body["data"]["data"][0]["price"] == 1197

    @pytest.mark.asyncio
    async def test_unconvertible_filter_value_is_400(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?duration=abc")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid value 'abc' for filter 'duration'"

    @pytest.mark.asyncio
    async def test_operator_injection_is_ignored(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours?price[$ne]=0")

        assert response.json()["results"] == 4

    @pytest.mark.asyncio
    async def test_top_5_cheap(self, test_client, create_tour):
        for i, price in enumerate([900, 300, 700, 100, 500, 1100]):
            await create_tour(name=f"The Budget Tour {i}", price=price)

        response = await test_client.get("/api/v1/tours/top-5-cheap")

        tours = response.json()["data"]["data"]
        assert [t["price"] for t in tours] == [100, 300, 500, 700, 900]
        assert set(tours[0]) == {"id", "name", "price", "ratingsAverage", "summary", "difficulty"}

    @pytest.mark.asyncio
    async def test_tour_stats(self, test_client, seed):
        await seed()
        response = await test_client.get("/api/v1/tours/tour-stats")

        assert response.status_code == 200
        stats = response.json()["data"]["stats"]
        assert [s["difficulty"] for s in stats] == ["medium", "easy", "difficult"]
        easy = stats[1]
        assert easy["numTours"] == 2
        assert easy["numRatings"] == 0
        assert easy["avgRating"] == 4.5
        assert easy["avgPrice"] == 797
        assert easy["minPrice"] == 397
        assert easy["maxPrice"] == 1197


class TestViews:
    @pytest.mark.asyncio
    async def test_overview_lists_tours(self, test_client, create_tour):
        await create_tour()
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "The Forest Hiker" in response.text
        assert 'href="/tour/the-forest-hiker"' in response.text

    @pytest.mark.asyncio
    async def test_overview_without_tours(self, test_client):
        response = await test_client.get("/")

        assert "No tours yet." in response.text

    @pytest.mark.asyncio
    async def test_tour_page(self, test_client, create_tour):
        await create_tour()
        response = await test_client.get("/tour/the-forest-hiker")

        assert response.status_code == 200
        assert "<title>Tourbook | The Forest Hiker Tour</title>" in response.text

    @pytest.mark.asyncio
    async def test_unknown_tour_page_is_404(self, test_client):
        response = await test_client.get("/tour/nowhere")

        assert response.status_code == 404
        assert response.json()["message"] == "There is no tour with the name 'nowhere'."

    @pytest.mark.asyncio
    async def test_markup_in_names_is_escaped(self, test_client, create_tour):
        await create_tour(name="Tour <b>Bold</b> Trip")
        response = await test_client.get("/")

        assert "<b>Bold" not in response.text
        assert "Bold" in response.text
