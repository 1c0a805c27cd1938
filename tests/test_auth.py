"""
Authentication API tests: signup, login, one-time codes, tokens and
account endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from grihome.models.otp import OtpCode
from grihome.models.user import User
from grihome.config import settings
from grihome.utils.auth import create_refresh_token
from tests.conftest import UserFactory, TEST_PASSWORD, api, auth_headers


async def latest_code(db_session, identifier: str, purpose: str = "login") -> str:
    result = await db_session.execute(
        select(OtpCode).where(OtpCode.identifier == identifier, OtpCode.purpose == purpose)
    )
    return result.scalars().one().code


class TestSignup:

    async def test_signup_creates_unverified_buyer(self, client: AsyncClient):
        response = await client.post(api("/auth/signup"), json={
            "first_name": "Asha",
            "last_name": "Rao",
            "username": "asha.rao",
            "email": "Asha@Example.com",
            "password": "securepassword",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "asha@example.com"
        assert data["role"] == "BUYER"
        assert data["is_verified"] is False
        assert "hashed_password" not in data

    async def test_agent_requires_company(self, client: AsyncClient):
        response = await client.post(api("/auth/signup"), json={
            "first_name": "Ravi",
            "username": "ravi_agent",
            "email": "ravi@example.com",
            "password": "securepassword",
            "is_agent": True,
        })
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_agent_signup(self, client: AsyncClient):
        response = await client.post(api("/auth/signup"), json={
            "first_name": "Ravi",
            "username": "ravi_agent",
            "email": "ravi@example.com",
            "password": "securepassword",
            "is_agent": True,
            "company_name": "  Ravi Estates ",
        })
        assert response.status_code == 201
        assert response.json()["role"] == "AGENT"
        assert response.json()["company_name"] == "Ravi Estates"

    async def test_duplicate_email_rejected_even_if_unverified(self, client: AsyncClient, unverified_user: User):
        response = await client.post(api("/auth/signup"), json={
            "first_name": "Other",
            "username": "someone_else",
            "email": unverified_user.email,
            "password": "securepassword",
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DUPLICATE_RESOURCE"

    async def test_short_password_rejected(self, client: AsyncClient):
        response = await client.post(api("/auth/signup"), json={
            "first_name": "Short",
            "username": "short_pw",
            "email": "short@example.com",
            "password": "abc",
        })
        assert response.status_code == 422


class TestLogin:

    @pytest.mark.parametrize("identifier", ["buyer@example.com", "BUYER@example.com", "buyer"])
    async def test_login_by_email_or_username(self, client: AsyncClient, buyer: User, identifier: str):
        response = await client.post(api("/auth/login"), json={"identifier": identifier, "password": TEST_PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(buyer.id)
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == settings.access_token_expire_minutes * 60
        assert data["access_token"] and data["refresh_token"]

    async def test_login_by_mobile(self, client: AsyncClient, db_session):
        user = await UserFactory.create(db_session, mobile_number="+919876543210")
        response = await client.post(api("/auth/login"), json={"identifier": "+919876543210", "password": TEST_PASSWORD})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(user.id)

    async def test_wrong_password(self, client: AsyncClient, buyer: User):
        response = await client.post(api("/auth/login"), json={"identifier": buyer.email, "password": "wrongpassword"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    async def test_inactive_account(self, client: AsyncClient, db_session):
        user = await UserFactory.create(db_session, is_active=False)
        response = await client.post(api("/auth/login"), json={"identifier": user.email, "password": TEST_PASSWORD})
        assert response.status_code == 403

    async def test_login_rate_limited(self, client: AsyncClient, buyer: User):
        limit = settings.rate_limits["auth"][0]
        for _ in range(limit):
            await client.post(api("/auth/login"), json={"identifier": buyer.email, "password": "wrongpassword"})

        response = await client.post(api("/auth/login"), json={"identifier": buyer.email, "password": TEST_PASSWORD})
        assert response.status_code == 429
        assert "Retry-After" in response.headers


class TestTokens:

    async def test_me(self, client: AsyncClient, buyer: User):
        response = await client.get(api("/auth/me"), headers=auth_headers(buyer))
        assert response.status_code == 200
        assert response.json()["username"] == "buyer"

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get(api("/auth/me"))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_refresh(self, client: AsyncClient, buyer: User):
        refresh = create_refresh_token(user_id=buyer.id, email=buyer.email)
        response = await client.post(api("/auth/refresh"), json={"refresh_token": refresh})
        assert response.status_code == 200
        access = response.json()["access_token"]

        me = await client.get(api("/auth/me"), headers={"Authorization": f"Bearer {access}"})
        assert me.json()["id"] == str(buyer.id)

    async def test_access_token_cannot_refresh(self, client: AsyncClient, buyer: User):
        access = auth_headers(buyer)["Authorization"].split(" ", 1)[1]
        response = await client.post(api("/auth/refresh"), json={"refresh_token": access})
        assert response.status_code == 401

    async def test_validate(self, client: AsyncClient, buyer: User):
        response = await client.post(api("/auth/validate"), headers=auth_headers(buyer))
        assert response.json()["valid"] is True
        assert response.json()["user_id"] == str(buyer.id)

        response = await client.post(api("/auth/validate"), headers={"Authorization": "Bearer garbage"})
        assert response.json() == {
            "valid": False, "user_id": None, "email": None, "role": None, "expires_at": None
        }


class TestUniqueness:

    async def test_unverified_email_counts_as_available(self, client: AsyncClient, unverified_user: User):
        response = await client.post(api("/auth/check-unique"), json={"field": "email", "value": unverified_user.email})
        assert response.json() == {"is_unique": True}

    async def test_verified_email_taken(self, client: AsyncClient, buyer: User):
        response = await client.post(api("/auth/check-unique"), json={"field": "email", "value": "Buyer@example.com"})
        assert response.json() == {"is_unique": False}

    async def test_username_always_taken(self, client: AsyncClient, unverified_user: User):
        response = await client.post(api("/auth/check-unique"), json={"field": "username", "value": "newcomer"})
        assert response.json() == {"is_unique": False}

    async def test_malformed_mobile(self, client: AsyncClient):
        response = await client.post(api("/auth/check-unique"), json={"field": "mobile", "value": "12ab"})
        assert response.status_code == 422

    async def test_check_user(self, client: AsyncClient, unverified_user: User):
        response = await client.post(api("/auth/check-user"), json={"identifier": "newcomer"})
        assert response.json() == {"exists": True, "is_verified": False, "has_password": True}

        response = await client.post(api("/auth/check-user"), json={"identifier": "nobody@example.com"})
        assert response.json()["exists"] is False


class TestOtp:

    async def test_login_with_emailed_code(self, client: AsyncClient, db_session, unverified_user: User):
        response = await client.post(api("/auth/otp/send"), json={"identifier": unverified_user.email})
        assert response.status_code == 200
        assert response.json()["channel"] == "email"
        assert response.json()["expires_in"] == settings.otp_expire_minutes * 60

        code = await latest_code(db_session, unverified_user.email)
        response = await client.post(api("/auth/otp/verify"), json={"identifier": unverified_user.email, "otp": code})

        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert data["access_token"]
        # The code went through the inbox, so the email is now confirmed
        assert data["user"]["is_email_verified"] is True

    async def test_code_is_single_use(self, client: AsyncClient, db_session, buyer: User):
        await client.post(api("/auth/otp/send"), json={"identifier": buyer.email})
        code = await latest_code(db_session, buyer.email)

        first = await client.post(api("/auth/otp/verify"), json={"identifier": buyer.email, "otp": code})
        second = await client.post(api("/auth/otp/verify"), json={"identifier": buyer.email, "otp": code})
        assert first.status_code == 200
        assert second.status_code == 401

    async def test_wrong_code(self, client: AsyncClient, buyer: User):
        await client.post(api("/auth/otp/send"), json={"identifier": buyer.email})
        response = await client.post(api("/auth/otp/verify"), json={"identifier": buyer.email, "otp": "0000000"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid or expired OTP"

    async def test_login_code_for_unknown_account(self, client: AsyncClient):
        response = await client.post(api("/auth/otp/send"), json={"identifier": "ghost@example.com"})
        assert response.status_code == 404

    async def test_send_limit(self, client: AsyncClient, buyer: User):
        for _ in range(settings.otp_send_limit):
            assert (await client.post(api("/auth/otp/send"), json={"identifier": buyer.email})).status_code == 200

        response = await client.post(api("/auth/otp/send"), json={"identifier": buyer.email})
        assert response.status_code == 429

    async def test_verify_mobile_number(self, client: AsyncClient, db_session, unverified_user: User):
        headers = auth_headers(unverified_user)
        body = {"identifier": "+91 98765 43210", "purpose": "verify"}

        response = await client.post(api("/auth/otp/send"), json=body, headers=headers)
        assert response.json()["channel"] == "mobile"

        code = await latest_code(db_session, "+919876543210", purpose="verify")
        response = await client.post(api("/auth/otp/verify"), json={**body, "otp": code}, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"] is None
        assert data["user"]["mobile_number"] == "+919876543210"
        assert data["user"]["is_mobile_verified"] is True
        assert data["user"]["is_verified"] is True

    async def test_verify_requires_sign_in(self, client: AsyncClient, unverified_user: User):
        response = await client.post(
            api("/auth/otp/send"), json={"identifier": unverified_user.email, "purpose": "verify"}
        )
        assert response.status_code == 401

    async def test_cannot_verify_someone_elses_email(self, client: AsyncClient, unverified_user: User, buyer: User):
        response = await client.post(
            api("/auth/otp/send"),
            json={"identifier": buyer.email, "purpose": "verify"},
            headers=auth_headers(unverified_user)
        )
        assert response.status_code == 403


class TestAccount:

    async def test_verification_status(self, client: AsyncClient, unverified_user: User):
        response = await client.get(api("/user/verification-status"), headers=auth_headers(unverified_user))
        assert response.json()["is_verified"] is False
        assert response.json()["email"] == unverified_user.email

    async def test_change_password(self, client: AsyncClient, buyer: User):
        response = await client.put(
            api("/user/password"),
            json={"current_password": TEST_PASSWORD, "new_password": "brandnewpassword"},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 200

        login = await client.post(api("/auth/login"), json={"identifier": "buyer", "password": "brandnewpassword"})
        assert login.status_code == 200

    async def test_change_password_wrong_current(self, client: AsyncClient, buyer: User):
        response = await client.put(
            api("/user/password"),
            json={"current_password": "not-my-password", "new_password": "brandnewpassword"},
            headers=auth_headers(buyer)
        )
        assert response.status_code == 401

    async def test_new_mobile_clears_verification(self, client: AsyncClient, db_session):
        user = await UserFactory.create(db_session, mobile_number="+919000000001")
        user.mobile_verified_at = user.email_verified_at
        await db_session.commit()

        response = await client.put(
            api("/user/profile"), json={"mobile_number": "+919000000002"}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert response.json()["mobile_number"] == "+919000000002"
        assert response.json()["is_mobile_verified"] is False
