"""
Property listing API tests: CRUD, lifecycle, favourites and filters.
"""

import pytest
import uuid
from httpx import AsyncClient

from grihome.models.property import ListingStatus, PropertyType, ListingType
from grihome.models.user import User
from grihome.config import settings
from tests.conftest import PropertyFactory, api, auth_headers


class TestCreateProperty:

    async def test_create_converts_size(self, client: AsyncClient, seller: User):
        response = await client.post(
            api("/properties"),
            json=PropertyFactory.create_data(property_size=100, size_unit="sq_m"),
            headers=auth_headers(seller)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["listing_status"] == "ACTIVE"
        assert data["sq_ft"] == 1076.4
        assert data["user_id"] == str(seller.id)
        assert data["location"]["city"] == "Hyderabad"
        assert data["owner"]["username"] == "seller"

    async def test_unverified_user_cannot_list(self, client: AsyncClient, unverified_user: User):
        response = await client.post(
            api("/properties"), json=PropertyFactory.create_data(), headers=auth_headers(unverified_user)
        )
        assert response.status_code == 403
        assert "verify" in response.json()["error"]["message"]

    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.post(api("/properties"), json=PropertyFactory.create_data())
        assert response.status_code == 401

    async def test_unknown_project(self, client: AsyncClient, seller: User):
        response = await client.post(
            api("/properties"),
            json=PropertyFactory.create_data(project_id=str(uuid.uuid4())),
            headers=auth_headers(seller)
        )
        assert response.status_code == 404

    async def test_negative_price_rejected(self, client: AsyncClient, seller: User):
        response = await client.post(
            api("/properties"), json=PropertyFactory.create_data(price=-5), headers=auth_headers(seller)
        )
        assert response.status_code == 422
        assert response.json()["error"]["details"]

    async def test_creation_rate_limited(self, client: AsyncClient, seller: User):
        for _ in range(settings.rate_limits["property_create"][0]):
            response = await client.post(
                api("/properties"), json=PropertyFactory.create_data(), headers=auth_headers(seller)
            )
            assert response.status_code == 201

        response = await client.post(
            api("/properties"), json=PropertyFactory.create_data(), headers=auth_headers(seller)
        )
        assert response.status_code == 429


class TestOwnership:

    async def test_owner_updates(self, client: AsyncClient, seller: User, listing):
        response = await client.put(
            api(f"/properties/{listing.id}"),
            json={"price": 9000000, "title": "Renovated 3BHK apartment"},
            headers=auth_headers(seller)
        )
        assert response.status_code == 200
        assert response.json()["price"] == 9000000
        assert response.json()["title"] == "Renovated 3BHK apartment"

    async def test_other_user_cannot_update(self, client: AsyncClient, buyer: User, listing):
        response = await client.put(
            api(f"/properties/{listing.id}"), json={"price": 1}, headers=auth_headers(buyer)
        )
        assert response.status_code == 403

    async def test_empty_update_rejected(self, client: AsyncClient, seller: User, listing):
        response = await client.put(api(f"/properties/{listing.id}"), json={}, headers=auth_headers(seller))
        assert response.status_code == 400

    async def test_delete(self, client: AsyncClient, seller: User, listing):
        response = await client.delete(api(f"/properties/{listing.id}"), headers=auth_headers(seller))
        assert response.status_code == 204

        response = await client.get(api(f"/properties/{listing.id}"))
        assert response.status_code == 404

    async def test_other_user_cannot_delete(self, client: AsyncClient, buyer: User, listing):
        response = await client.delete(api(f"/properties/{listing.id}"), headers=auth_headers(buyer))
        assert response.status_code == 403


class TestLifecycle:

    async def test_mark_sold_then_reactivate(self, client: AsyncClient, seller: User, listing):
        headers = auth_headers(seller)

        response = await client.post(
            api(f"/properties/{listing.id}/mark-sold"), json={"sold_to": " Priya "}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["listing_status"] == "SOLD"
        assert response.json()["sold_to"] == "Priya"
        assert response.json()["sold_at"] is not None

        response = await client.post(api(f"/properties/{listing.id}/reactivate"), headers=headers)
        assert response.status_code == 200
        assert response.json()["listing_status"] == "ACTIVE"
        assert response.json()["sold_to"] is None
        assert response.json()["sold_at"] is None

    async def test_mark_sold_without_body(self, client: AsyncClient, seller: User, listing):
        response = await client.post(api(f"/properties/{listing.id}/mark-sold"), headers=auth_headers(seller))
        assert response.status_code == 200
        assert response.json()["sold_to"] is None

    async def test_sold_listing_cannot_be_sold_again(self, client: AsyncClient, seller: User, db_session):
        sold = await PropertyFactory.create(db_session, seller, listing_status=ListingStatus.SOLD)
        response = await client.post(api(f"/properties/{sold.id}/mark-sold"), headers=auth_headers(seller))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"

    async def test_archive_twice(self, client: AsyncClient, seller: User, listing):
        headers = auth_headers(seller)
        assert (await client.post(api(f"/properties/{listing.id}/archive"), headers=headers)).status_code == 200
        assert (await client.post(api(f"/properties/{listing.id}/archive"), headers=headers)).status_code == 400

    async def test_active_listing_cannot_be_reactivated(self, client: AsyncClient, seller: User, listing):
        response = await client.post(api(f"/properties/{listing.id}/reactivate"), headers=auth_headers(seller))
        assert response.status_code == 400

    async def test_archived_listing_visible_to_owner_only(self, client: AsyncClient, seller: User, buyer: User, db_session):
        archived = await PropertyFactory.create(db_session, seller, listing_status=ListingStatus.ARCHIVED)

        assert (await client.get(api(f"/properties/{archived.id}"))).status_code == 404
        assert (await client.get(api(f"/properties/{archived.id}"), headers=auth_headers(buyer))).status_code == 404
        owner_view = await client.get(api(f"/properties/{archived.id}"), headers=auth_headers(seller))
        assert owner_view.status_code == 200
        assert owner_view.json()["listing_status"] == "ARCHIVED"

    async def test_own_listings_with_counts(self, client: AsyncClient, seller: User, listing, db_session):
        await PropertyFactory.create(db_session, seller, listing_status=ListingStatus.SOLD)

        response = await client.get(api("/user/properties"), headers=auth_headers(seller))
        assert response.json()["total"] == 2
        assert response.json()["counts"] == {"ACTIVE": 1, "SOLD": 1, "ARCHIVED": 0}

        response = await client.get(api("/user/properties?status=SOLD"), headers=auth_headers(seller))
        assert response.json()["total"] == 1


class TestFavorites:

    async def test_toggle_on_and_off(self, client: AsyncClient, buyer: User, listing):
        headers = auth_headers(buyer)
        body = {"property_id": str(listing.id)}

        response = await client.post(api("/properties/toggle-favorite"), json=body, headers=headers)
        assert response.json()["is_favorited"] is True
        assert response.json()["message"] == "Added to favorites"

        favorites = await client.get(api("/properties/favorites"), headers=headers)
        assert favorites.json()["total"] == 1
        assert favorites.json()["properties"][0]["is_favorited"] is True

        detail = await client.get(api(f"/properties/{listing.id}"), headers=headers)
        assert detail.json()["is_favorited"] is True

        response = await client.post(api("/properties/toggle-favorite"), json=body, headers=headers)
        assert response.json()["is_favorited"] is False
        assert response.json()["message"] == "Removed from favorites"

    async def test_cannot_favorite_own_listing(self, client: AsyncClient, seller: User, listing):
        response = await client.post(
            api("/properties/toggle-favorite"), json={"property_id": str(listing.id)}, headers=auth_headers(seller)
        )
        assert response.status_code == 403

    async def test_unknown_listing(self, client: AsyncClient, buyer: User):
        response = await client.post(
            api("/properties/toggle-favorite"), json={"property_id": str(uuid.uuid4())}, headers=auth_headers(buyer)
        )
        assert response.status_code == 404


class TestBrowse:

    @pytest.fixture
    async def catalogue(self, db_session, seller: User):
        await PropertyFactory.create(db_session, seller, title="Budget studio flat", price=2500000, bedrooms=1)
        await PropertyFactory.create(db_session, seller, title="Family villa with garden", price=25000000,
                                     bedrooms=4, property_type=PropertyType.VILLAS)
        await PropertyFactory.create(db_session, seller, title="Office floor for rent", price=150000,
                                     bedrooms=0, listing_type=ListingType.RENT, city="Bengaluru")
        await PropertyFactory.create(db_session, seller, title="Sold duplex apartment", price=9000000,
                                     listing_status=ListingStatus.SOLD)

    async def test_only_active_listed(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties"))
        data = response.json()
        assert data["pagination"]["total"] == 3
        assert all(p["listing_status"] == "ACTIVE" for p in data["properties"])

    async def test_price_and_bedroom_filters(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties?min_price=1000000&bedrooms=2"))
        titles = [p["title"] for p in response.json()["properties"]]
        assert titles == ["Family villa with garden"]

    async def test_city_filter_ignores_case(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties?city=bengaluru"))
        assert [p["title"] for p in response.json()["properties"]] == ["Office floor for rent"]

    async def test_sort_by_price(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties?sort=price_asc"))
        prices = [p["price"] for p in response.json()["properties"]]
        assert prices == sorted(prices)

    async def test_pagination(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties?page=2&page_size=2"))
        pagination = response.json()["pagination"]
        assert len(response.json()["properties"]) == 1
        assert pagination["total_pages"] == 2
        assert pagination["has_previous"] is True
        assert pagination["has_next"] is False

    async def test_inverted_price_range(self, client: AsyncClient):
        response = await client.get(api("/properties?min_price=500&max_price=100"))
        assert response.status_code == 422
        assert response.json()["error"]["details"][0]["field"] == "min_price"

    async def test_unknown_sort(self, client: AsyncClient):
        response = await client.get(api("/properties?sort=cheapest"))
        assert response.status_code == 422

    async def test_text_search(self, client: AsyncClient, catalogue):
        response = await client.get(api("/properties/search?q=VILLA"))
        assert [p["title"] for p in response.json()["properties"]] == ["Family villa with garden"]
