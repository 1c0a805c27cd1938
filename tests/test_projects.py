"""
Builder, project and interest API tests.
"""

import pytest
import uuid
from httpx import AsyncClient

from grihome.models.user import User
from tests.conftest import BuilderFactory, ProjectFactory, PropertyFactory, api, auth_headers


def project_body(builder_id, **overrides) -> dict:
    data = {
        "name": "Skyline Residency",
        "description": "Twin towers near the metro",
        "type": "APARTMENT",
        "builder_id": str(builder_id),
        "location": {"address": "Plot 7, Financial District", "city": "Hyderabad", "state": "Telangana"},
        "amenities": ["Gym", "Pool"],
        "min_price": 7500000,
        "max_price": 15000000,
    }
    data.update(overrides)
    return data


class TestBuilders:

    async def test_create_builder_parses_contacts(self, client: AsyncClient, buyer: User):
        response = await client.post(
            api("/builders"),
            json={
                "name": "  Aparna Constructions ",
                "contact_emails": "Sales@Aparna.in, info@aparna.in",
                "contact_phones": "+91 40 1111 2222, ",
            },
            headers=auth_headers(buyer)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Aparna Constructions"
        assert data["contact_emails"] == ["sales@aparna.in", "info@aparna.in"]
        assert data["contact_phones"] == ["+91 40 1111 2222"]

    async def test_name_unique_ignoring_case(self, client: AsyncClient, buyer: User, builder):
        response = await client.post(api("/builders"), json={"name": "PRESTIGE group"}, headers=auth_headers(buyer))
        assert response.status_code == 400

    async def test_bad_contact_email(self, client: AsyncClient, buyer: User):
        response = await client.post(
            api("/builders"), json={"name": "Broken Builders", "contact_emails": "not-an-email"},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 422

    async def test_search_with_project_counts(self, client: AsyncClient, builder, project, db_session):
        await ProjectFactory.create(db_session, builder, name="Archived Phase", is_archived=True)
        await BuilderFactory.create(db_session, name="Other Developers")

        response = await client.get(api("/builders?q=prest"))
        data = response.json()
        assert data["pagination"]["total"] == 1
        assert data["builders"][0]["project_count"] == 1

    async def test_detail_lists_projects(self, client: AsyncClient, builder, project):
        response = await client.get(api(f"/builders/{builder.id}"))
        assert response.status_code == 200
        assert [p["name"] for p in response.json()["projects"]] == ["Lakeside Towers"]

    async def test_unknown_builder(self, client: AsyncClient):
        response = await client.get(api(f"/builders/{uuid.uuid4()}"))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestProjects:

    async def test_create_without_geocoder(self, client: AsyncClient, buyer: User, builder):
        response = await client.post(api("/projects"), json=project_body(builder.id), headers=auth_headers(buyer))

        assert response.status_code == 201
        data = response.json()
        assert data["builder"]["name"] == "Prestige Group"
        assert data["location"]["city"] == "Hyderabad"
        assert data["created_by_id"] == str(buyer.id)
        assert data["is_archived"] is False

    async def test_unknown_builder(self, client: AsyncClient, buyer: User):
        response = await client.post(api("/projects"), json=project_body(uuid.uuid4()), headers=auth_headers(buyer))
        assert response.status_code == 404

    async def test_list_hides_archived(self, client: AsyncClient, builder, project, db_session):
        await ProjectFactory.create(db_session, builder, name="Old Phase", is_archived=True)
        await ProjectFactory.create(db_session, builder, name="Tech Park", city="Pune")

        response = await client.get(api("/projects"))
        names = {p["name"] for p in response.json()["projects"]}
        assert names == {"Lakeside Towers", "Tech Park"}

        response = await client.get(api("/projects?city=pune"))
        assert [p["name"] for p in response.json()["projects"]] == ["Tech Park"]

    async def test_search_matches_builder_name(self, client: AsyncClient, project):
        response = await client.get(api("/projects/search?q=prestige"))
        assert response.json()["pagination"]["total"] == 1

    async def test_archive_toggle(self, client: AsyncClient, seller: User, project):
        response = await client.post(api(f"/projects/{project.id}/archive"), headers=auth_headers(seller))
        assert response.json() == {"id": str(project.id), "is_archived": True, "message": "Project archived"}

        response = await client.post(api(f"/projects/{project.id}/archive"), headers=auth_headers(seller))
        assert response.json()["is_archived"] is False

    async def test_update_by_creator(self, client: AsyncClient, seller: User, project):
        response = await client.put(
            api(f"/projects/{project.id}"), json={"amenities": ["Clubhouse"]}, headers=auth_headers(seller)
        )
        assert response.status_code == 200
        assert response.json()["amenities"] == ["Clubhouse"]


class TestProjectAgentsApi:

    async def test_register_and_feature(self, client: AsyncClient, agent: User, project):
        headers = auth_headers(agent)

        response = await client.post(api(f"/projects/{project.id}/register-agent"), headers=headers)
        assert response.status_code == 201
        assert response.json()["user_id"] == str(agent.id)

        response = await client.post(
            api(f"/projects/{project.id}/promote-agent"), json={"total_days": 3}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["total_days"] == 3
        assert response.json()["total_amount"] == 0.0

        response = await client.get(api(f"/projects/{project.id}/agents"))
        data = response.json()
        assert data["total_agents"] == 1
        assert data["featured_agents"][0]["agent"]["company_name"] == "Test Realty"

    async def test_register_twice(self, client: AsyncClient, agent: User, project):
        headers = auth_headers(agent)
        await client.post(api(f"/projects/{project.id}/register-agent"), headers=headers)
        response = await client.post(api(f"/projects/{project.id}/register-agent"), headers=headers)
        assert response.status_code == 400

    async def test_buyer_cannot_register(self, client: AsyncClient, buyer: User, project):
        response = await client.post(api(f"/projects/{project.id}/register-agent"), headers=auth_headers(buyer))
        assert response.status_code == 403

    async def test_promotion_longer_than_five_days(self, client: AsyncClient, agent: User, project):
        headers = auth_headers(agent)
        await client.post(api(f"/projects/{project.id}/register-agent"), headers=headers)
        response = await client.post(
            api(f"/projects/{project.id}/promote-agent"), json={"total_days": 6}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_DURATION"

    async def test_promote_property_in_project(self, client: AsyncClient, seller: User, project, db_session):
        listing = await PropertyFactory.create(db_session, seller, project=project)
        other = await PropertyFactory.create(db_session, seller, title="Second unit in tower B", project=project)

        response = await client.post(
            api(f"/projects/{project.id}/promote-property"),
            json={"property_id": str(listing.id), "duration": 7},
            headers=auth_headers(seller)
        )
        assert response.status_code == 200

        response = await client.get(api(f"/projects/{project.id}/properties"))
        data = response.json()
        assert data["total_properties"] == 2
        assert [e["property"]["id"] for e in data["featured_properties"]] == [str(listing.id)]
        assert [e["property"]["id"] for e in data["regular_properties"]] == [str(other.id)]


class TestInterests:

    async def test_express_interest_in_project(self, client: AsyncClient, buyer: User, project):
        response = await client.post(
            api(f"/projects/{project.id}/express-interest"),
            json={"message": "Site visit on Saturday?"},
            headers=auth_headers(buyer)
        )

        assert response.status_code == 201
        assert response.json()["project_id"] == str(project.id)
        # Builder has a contact email and the console backend always delivers
        assert response.json()["notified"] is True

        response = await client.get(api(f"/interests/check?project_id={project.id}"), headers=auth_headers(buyer))
        assert response.json() == {"has_expressed_interest": True}

    async def test_interest_recorded_once(self, client: AsyncClient, buyer: User, listing):
        body = {"property_id": str(listing.id)}
        first = await client.post(api("/interests/express"), json=body, headers=auth_headers(buyer))
        second = await client.post(api("/interests/express"), json=body, headers=auth_headers(buyer))
        assert first.status_code == 201
        assert second.status_code == 400

    async def test_exactly_one_target(self, client: AsyncClient, buyer: User, project, listing):
        response = await client.post(
            api("/interests/express"),
            json={"project_id": str(project.id), "property_id": str(listing.id)},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 422

    async def test_check_without_interest(self, client: AsyncClient, buyer: User, listing):
        response = await client.get(api(f"/interests/check?property_id={listing.id}"), headers=auth_headers(buyer))
        assert response.json() == {"has_expressed_interest": False}


class TestActiveListings:

    async def test_properties_and_builder_projects(self, client: AsyncClient, seller: User, listing, project):
        response = await client.get(api("/user/active-listings"), headers=auth_headers(seller))
        data = response.json()
        assert data["has_active_listings"] is True
        assert [p["id"] for p in data["properties"]] == [str(listing.id)]
        assert [p["id"] for p in data["projects"]] == [str(project.id)]

    async def test_nothing_to_advertise(self, client: AsyncClient, buyer: User):
        response = await client.get(api("/user/active-listings"), headers=auth_headers(buyer))
        assert response.json() == {"properties": [], "projects": [], "has_active_listings": False}
