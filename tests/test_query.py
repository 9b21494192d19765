"""
Tests for the list query engine.

Unit tests cover parse_query_params() and QuerySpec on their own (no
database). API tests cover filtering, sorting, projection and pagination
end to end against /tours.
"""

import pytest
import pytest_asyncio

from conftest import API
from tours_api.exceptions import ValidationError
from tours_api.models.tour import Tour
from tours_api.query import DEFAULT_SORT, FilterClause, QuerySpec, SortKey, parse_query_params


# ---------------------------------------------------------------------------
# parse_query_params
# ---------------------------------------------------------------------------

class TestParseQueryParams:

    def test_defaults(self):
        spec = parse_query_params({})
        assert spec.filters == ()
        assert spec.sort == DEFAULT_SORT
        assert spec.page == 1
        assert spec.limit == 100
        assert spec.offset == 0

    def test_filters_and_comparators(self):
        spec = parse_query_params({"difficulty": "easy", "price[lt]": "1500", "duration[gte]": "5"})
        assert set(spec.filters) == {
            FilterClause("difficulty", "eq", "easy"),
            FilterClause("price", "lt", "1500"),
            FilterClause("duration", "gte", "5"),
        }

    def test_reserved_params_are_not_filters(self):
        spec = parse_query_params({"page": "2", "sort": "price", "limit": "5", "fields": "name"})
        assert spec.filters == ()

    def test_unrecognised_key_kept_as_exact_match(self):
        spec = parse_query_params({"price[between]": "1"})
        assert spec.filters == (FilterClause("price[between]", "eq", "1"),)

    def test_sort(self):
        spec = parse_query_params({"sort": "-ratings_average, price"})
        assert spec.sort == (SortKey("ratings_average", descending=True), SortKey("price"))

    def test_include_fields(self):
        spec = parse_query_params({"fields": "name,price"})
        assert spec.include == ("name", "price")
        assert spec.exclude == ()

    def test_exclude_fields(self):
        spec = parse_query_params({"fields": "-summary,-description"})
        assert spec.exclude == ("summary", "description")

    def test_mixed_fields_rejected(self):
        with pytest.raises(ValidationError):
            parse_query_params({"fields": "name,-price"})

    def test_page_window(self):
        spec = parse_query_params({"page": "3", "limit": "10"})
        assert spec.offset == 20
        assert spec.limit == 10

    @pytest.mark.parametrize("params", [
        {"page": "0"},
        {"page": "-1"},
        {"page": "two"},
        {"limit": "0"},
        {"limit": "1001"},
    ])
    def test_bad_page_or_limit(self, params):
        with pytest.raises(ValidationError):
            parse_query_params(params, default_limit=100, max_limit=1000)


class TestProjection:

    ROW = {"id": "1", "name": "A tour", "price": 10.0, "summary": "s"}

    def test_include_always_keeps_id(self):
        spec = QuerySpec(include=("name",))
        assert spec.project(self.ROW) == {"id": "1", "name": "A tour"}

    def test_exclude(self):
        spec = QuerySpec(exclude=("summary", "price"))
        assert spec.project(self.ROW) == {"id": "1", "name": "A tour"}

    def test_no_projection(self):
        assert QuerySpec().project(self.ROW) == self.ROW


# ---------------------------------------------------------------------------
# End to end against /tours
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def many_tours(session_factory):
    """25 public tours with prices 100..2500 plus one secret tour."""
    async with session_factory() as session:
        for i in range(1, 26):
            session.add(Tour(
                name=f"Sample Tour Number {i:02d}",
                slug=f"sample-tour-number-{i:02d}",
                duration=i,
                max_group_size=10,
                difficulty="easy" if i % 2 else "difficult",
                price=float(i * 100),
                image_cover="cover.jpg",
            ))
        session.add(Tour(
            name="Secret Valley Expedition",
            slug="secret-valley-expedition",
            duration=3,
            max_group_size=4,
            difficulty="difficult",
            price=5000.0,
            image_cover="cover.jpg",
            secret_tour=True,
        ))
        await session.commit()


class TestTourListing:

    async def test_default_listing_hides_secret_tours(self, client, many_tours):
        response = await client.get(f"{API}/tours")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["results"] == 25
        assert all(t["name"] != "Secret Valley Expedition" for t in body["data"])
        assert all("secret_tour" not in t for t in body["data"])

    async def test_filter_with_comparators(self, client, many_tours):
        response = await client.get(
            f"{API}/tours",
            params={"difficulty": "easy", "price[gte]": "500", "price[lt]": "1000"},
        )
        prices = sorted(t["price"] for t in response.json()["data"])
        assert prices == [500.0, 700.0, 900.0]

    async def test_sort_ascending_and_descending(self, client, many_tours):
        asc = await client.get(f"{API}/tours", params={"sort": "price", "limit": "3"})
        desc = await client.get(f"{API}/tours", params={"sort": "-price", "limit": "3"})
        assert [t["price"] for t in asc.json()["data"]] == [100.0, 200.0, 300.0]
        assert [t["price"] for t in desc.json()["data"]] == [2500.0, 2400.0, 2300.0]

    async def test_include_projection(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"fields": "name,price"})
        for tour in response.json()["data"]:
            assert set(tour) == {"id", "name", "price"}

    async def test_exclude_projection(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"fields": "-summary,-description"})
        tour = response.json()["data"][0]
        assert "summary" not in tour
        assert "description" not in tour
        assert "name" in tour

    async def test_pagination(self, client, many_tours):
        seen = []
        for page in (1, 2, 3):
            response = await client.get(
                f"{API}/tours", params={"page": str(page), "limit": "10", "sort": "price"}
            )
            seen.extend(t["id"] for t in response.json()["data"])

        assert len(seen) == 25
        assert len(set(seen)) == 25

        page_3 = await client.get(f"{API}/tours", params={"page": "3", "limit": "10", "sort": "price"})
        assert page_3.json()["results"] == 5
        assert page_3.json()["data"][0]["price"] == 2100.0

    async def test_page_past_the_end_is_empty(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"page": "4", "limit": "10"})
        assert response.status_code == 200
        assert response.json() == {"status": "success", "results": 0, "data": []}

    async def test_huge_page_number_is_empty(self, client, many_tours):
        response = await client.get(
            f"{API}/tours", params={"page": str(10**18), "limit": "100"}
        )
        assert response.status_code == 200
        assert response.json() == {"status": "success", "results": 0, "data": []}

    async def test_unknown_filter_yields_empty_result(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"colour": "red"})
        assert response.status_code == 200
        assert response.json()["results"] == 0

    async def test_hidden_field_filter_yields_empty_result(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"secret_tour": "true"})
        assert response.json()["results"] == 0

    async def test_invalid_filter_value(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"price[lt]": "cheap"})
        assert response.status_code == 400
        assert response.json()["status"] == "fail"

    async def test_integer_filter_out_of_range(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"duration[gt]": str(10**20)})
        assert response.status_code == 400
        assert response.json()["message"] == f"Invalid value '{10**20}' for field 'duration'"

    async def test_projection_of_unknown_field(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"fields": "name,colour"})
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot select unknown field 'colour'"

    async def test_projection_of_hidden_field(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"fields": "-secret_tour"})
        assert response.status_code == 400

    async def test_sort_by_unknown_field(self, client, many_tours):
        response = await client.get(f"{API}/tours", params={"sort": "popularity"})
        assert response.status_code == 400

    async def test_limit_above_maximum(self, client):
        response = await client.get(f"{API}/tours", params={"limit": "100000"})
        assert response.status_code == 400
