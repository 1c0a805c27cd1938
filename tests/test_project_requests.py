"""
Project listing request API tests.
"""

import pytest
import uuid
from httpx import AsyncClient

from grihome.config import settings
from grihome.models.user import User
from grihome.services import project_request
from tests.conftest import api, auth_headers


def request_body(**overrides) -> dict:
    body = {
        "builder_name": "Aparna Constructions",
        "project_name": "Sarovar Zenith",
        "location": "Nallagandla, Hyderabad",
        "project_type": "APARTMENT",
        "contact_person_name": "Kiran Rao",
        "contact_person_email": "Kiran.Rao@Aparna.example.com",
        "contact_person_phone": "+91 98765-43210",
        "builder_website": "https://aparna.example.com",
    }
    body.update(overrides)
    return body


@pytest.fixture
def admin_inbox(monkeypatch):
    sent = []

    async def record(*, to_email, subject, text):
        sent.append((to_email, subject, text))
        return True

    monkeypatch.setattr(project_request, "notify_quietly", record)
    monkeypatch.setattr(settings, "admin_emails", ["ops@grihome.in"])
    return sent


async def submit(client, user, **overrides):
    return await client.post(api("/project-requests"), json=request_body(**overrides), headers=auth_headers(user))


class TestSubmit:

    async def test_submit(self, client: AsyncClient, buyer: User, admin_inbox):
        response = await submit(client, buyer)
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Project request submitted successfully"
        assert data["notified"] is True

        to, subject, text = admin_inbox[0]
        assert to == "ops@grihome.in"
        assert subject == "[New project request] Sarovar Zenith by Aparna Constructions"
        assert f"Request ID: {data['request_id']}" in text
        assert "Phone: +919876543210" in text

    async def test_no_admins_configured(self, client: AsyncClient, buyer: User, admin_inbox, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", [])
        response = await submit(client, buyer)
        assert response.status_code == 201
        assert response.json()["notified"] is False

    async def test_requires_login(self, client: AsyncClient):
        response = await client.post(api("/project-requests"), json=request_body())
        assert response.status_code == 401

    @pytest.mark.parametrize("field, value", [
        ("contact_person_email", "not-an-email"),
        ("contact_person_phone", "12345"),
        ("project_type", "CASTLE"),
        ("builder_name", "   "),
    ])
    async def test_invalid_fields(self, client: AsyncClient, buyer: User, admin_inbox, field, value):
        response = await submit(client, buyer, **{field: value})
        assert response.status_code == 422
        assert admin_inbox == []


class TestReview:

    async def test_list_and_filter(self, client: AsyncClient, buyer: User, seller: User, admin_inbox):
        first = (await submit(client, buyer)).json()["request_id"]
        await submit(client, buyer, project_name="Lake Vista")

        response = await client.put(
            api(f"/project-requests/{first}/status"), json={"status": "APPROVED"}, headers=auth_headers(seller)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert response.json()["contact_person_email"] == "kiran.rao@aparna.example.com"

        data = (await client.get(api("/project-requests"), headers=auth_headers(seller))).json()
        assert data["pagination"]["total"] == 2

        data = (await client.get(api("/project-requests"), params={"status": "PENDING"},
                                 headers=auth_headers(seller))).json()
        assert [r["project_name"] for r in data["requests"]] == ["Lake Vista"]

    async def test_unknown_request(self, client: AsyncClient, seller: User):
        response = await client.put(
            api(f"/project-requests/{uuid.uuid4()}/status"), json={"status": "REJECTED"}, headers=auth_headers(seller)
        )
        assert response.status_code == 404

    async def test_admins_only_in_production(self, client: AsyncClient, seller: User, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        monkeypatch.setattr(settings, "admin_emails", ["ops@grihome.in"])

        response = await client.get(api("/project-requests"), headers=auth_headers(seller))
        assert response.status_code == 403
