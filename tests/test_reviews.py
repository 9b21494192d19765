"""
Tests for reviews and the tour rating rollup.

These tests verify:
  - Reviews can be created nested under a tour or with tour_id in the body
  - One review per user per tour (409 on the second attempt)
  - The tour's ratings_average / ratings_quantity are recomputed after
    every create, update and delete, before the response is returned
  - Deleting the last review resets the tour to 4.5 / 0
  - Listing reviews nested under a tour only returns that tour's reviews
"""

import uuid

from conftest import API, signed_up_client, signup_payload, tour_payload


async def _ratings(client, tour_id: str) -> tuple[float, int]:
    response = await client.get(f"{API}/tours/{tour_id}")
    data = response.json()["data"]
    return data["ratings_average"], data["ratings_quantity"]


class TestCreateReview:

    async def test_create_nested(self, user_client, tour):
        response = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews",
            json={"review": "Fantastic trip", "rating": 4},
        )
        assert response.status_code == 201
        review = response.json()["data"]
        assert review["tour_id"] == tour["id"]
        assert review["user_id"] == user_client.user["id"]
        assert review["rating"] == 4
        assert review["user"] == {"id": user_client.user["id"], "name": "Test User"}

    async def test_create_with_tour_in_body(self, user_client, tour):
        response = await user_client.post(
            f"{API}/reviews",
            json={"review": "Fantastic trip", "rating": 4, "tour_id": tour["id"]},
        )
        assert response.status_code == 201
        assert response.json()["data"]["tour_id"] == tour["id"]

    async def test_create_without_tour(self, user_client):
        response = await user_client.post(
            f"{API}/reviews", json={"review": "Where was I?", "rating": 3}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Review must belong to a tour!"

    async def test_create_for_unknown_tour(self, user_client):
        response = await user_client.post(
            f"{API}/tours/{uuid.uuid4()}/reviews",
            json={"review": "Ghost tour", "rating": 3},
        )
        assert response.status_code == 404

    async def test_one_review_per_tour(self, user_client, tour):
        first = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews",
            json={"review": "Loved it", "rating": 5},
        )
        assert first.status_code == 201

        second = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews",
            json={"review": "Loved it even more", "rating": 5},
        )
        assert second.status_code == 409
        assert second.json() == {
            "status": "fail",
            "message": "You have already reviewed this tour",
        }

        # The failed insert did not disturb the aggregate
        assert await _ratings(user_client, tour["id"]) == (5.0, 1)

    async def test_rating_out_of_range(self, user_client, tour):
        response = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews",
            json={"review": "Off the charts", "rating": 6},
        )
        assert response.status_code == 400


class TestRatingAggregate:

    async def test_aggregate_follows_every_mutation(
        self, user_client, second_user_client, tour
    ):
        assert await _ratings(user_client, tour["id"]) == (4.5, 0)

        r1 = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Good", "rating": 4}
        )
        assert await _ratings(user_client, tour["id"]) == (4.0, 1)

        r2 = await second_user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Okay", "rating": 3}
        )
        assert await _ratings(user_client, tour["id"]) == (3.5, 2)

        # Update: (5 + 3) / 2
        await user_client.patch(
            f"{API}/reviews/{r1.json()['data']['id']}", json={"rating": 5}
        )
        assert await _ratings(user_client, tour["id"]) == (4.0, 2)

        # Delete one, then the last one
        await second_user_client.delete(f"{API}/reviews/{r2.json()['data']['id']}")
        assert await _ratings(user_client, tour["id"]) == (5.0, 1)

        await user_client.delete(f"{API}/reviews/{r1.json()['data']['id']}")
        assert await _ratings(user_client, tour["id"]) == (4.5, 0)

    async def test_average_rounded_to_one_decimal(
        self, make_client, user_client, second_user_client, tour
    ):
        third = await signed_up_client(
            make_client, signup_payload("Third User", "third@example.com")
        )
        for ac, rating in ((user_client, 5), (second_user_client, 4), (third, 4)):
            response = await ac.post(
                f"{API}/tours/{tour['id']}/reviews", json={"review": "Nice", "rating": rating}
            )
            assert response.status_code == 201

        # 13 / 3 = 4.333...
        assert await _ratings(user_client, tour["id"]) == (4.3, 3)

    async def test_deleting_reviewer_updates_aggregate(
        self, admin_client, user_client, second_user_client, tour
    ):
        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Meh", "rating": 2}
        )
        await second_user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Great", "rating": 4}
        )
        assert await _ratings(admin_client, tour["id"]) == (3.0, 2)

        response = await admin_client.delete(f"{API}/users/{user_client.user['id']}")
        assert response.status_code == 204
        assert await _ratings(admin_client, tour["id"]) == (4.0, 1)


class TestListReviews:

    async def test_nested_listing_is_scoped_to_tour(self, admin_client, user_client, tour):
        other = await admin_client.post(
            f"{API}/tours", json=tour_payload("The Sea Explorer")
        )
        other_id = other.json()["data"]["id"]

        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "First", "rating": 5}
        )
        await user_client.post(
            f"{API}/tours/{other_id}/reviews", json={"review": "Second", "rating": 3}
        )

        nested = await user_client.get(f"{API}/tours/{tour['id']}/reviews")
        assert nested.status_code == 200
        assert nested.json()["results"] == 1
        assert nested.json()["data"][0]["review"] == "First"

        everything = await user_client.get(f"{API}/reviews")
        assert everything.json()["results"] == 2

    async def test_filter_and_project_reviews(self, user_client, second_user_client, tour):
        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Top", "rating": 5}
        )
        await second_user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Low", "rating": 2}
        )

        response = await user_client.get(
            f"{API}/reviews", params={"rating[gte]": "4", "fields": "review,rating"}
        )
        assert response.json()["results"] == 1
        assert set(response.json()["data"][0]) == {"id", "review", "rating"}

    async def test_listed_reviews_carry_author_name(self, user_client, second_user_client, tour):
        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Top", "rating": 5}
        )
        await second_user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Low", "rating": 2}
        )

        response = await user_client.get(f"{API}/reviews", params={"sort": "rating"})
        authors = [r["user"]["name"] for r in response.json()["data"]]
        assert authors == ["Second User", "Test User"]

    async def test_nested_listing_for_unknown_tour(self, user_client):
        response = await user_client.get(f"{API}/tours/{uuid.uuid4()}/reviews")
        assert response.status_code == 404


class TestTourWithReviews:

    async def test_single_tour_embeds_reviews(self, client, user_client, second_user_client, tour):
        first = await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "First", "rating": 5}
        )
        await second_user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "Second", "rating": 3}
        )

        response = await client.get(f"{API}/tours/{tour['id']}")
        assert response.status_code == 200
        reviews = response.json()["data"]["reviews"]
        assert [r["review"] for r in reviews] == ["First", "Second"]
        assert reviews[0]["id"] == first.json()["data"]["id"]
        assert reviews[0]["user"] == {"id": user_client.user["id"], "name": "Test User"}
        assert reviews[1]["user"]["name"] == "Second User"

    async def test_tour_without_reviews(self, client, tour):
        response = await client.get(f"{API}/tours/{tour['id']}")
        assert response.json()["data"]["reviews"] == []

    async def test_tour_list_does_not_embed_reviews(self, client, user_client, tour):
        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "First", "rating": 5}
        )
        response = await client.get(f"{API}/tours")
        assert "reviews" not in response.json()["data"][0]

    async def test_author_rename_shows_on_reviews(self, client, user_client, tour):
        await user_client.post(
            f"{API}/tours/{tour['id']}/reviews", json={"review": "First", "rating": 5}
        )
        await user_client.patch(f"{API}/users/updateMe", json={"name": "Renamed User"})

        response = await client.get(f"{API}/tours/{tour['id']}")
        assert response.json()["data"]["reviews"][0]["user"]["name"] == "Renamed User"
