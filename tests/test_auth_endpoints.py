from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from smart_rewards_api.core.security import decode_access_token


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_register_customer_awards_signup_bonus(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": " Tariro@Example.com ",
                "password": "secret123",
                "user_type": "customer",
                "full_name": "Tariro Moyo",
            },
        )

    assert response.status_code == 201
    body = response.json()
    assert body["awards"] == ["Welcome bonus for joining the platform"]
    user = body["user"]
    assert user["email"] == "tariro@example.com"
    assert user["userType"] == "customer"
    assert user["business"] is None
    assert user["customer"]["loyaltyPoints"] == 2
    assert user["customer"]["referralCode"].startswith("SR")
    assert len(user["customer"]["referralCode"]) == 8

    claims = decode_access_token(body["token"])
    assert claims["userId"] == user["id"]
    assert claims["userType"] == "customer"


@pytest.mark.asyncio
async def test_referral_code_credits_referrer(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        first = await client.post(
            "/api/v1/auth/register",
            json={"email": "first@example.com", "password": "pw", "user_type": "customer"},
        )
        code = first.json()["user"]["customer"]["referralCode"]

        second = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "second@example.com",
                "password": "pw",
                "user_type": "customer",
                "referral_code": code.lower(),
            },
        )
        assert second.json()["awards"] == [
            "Welcome bonus for joining the platform",
            "Referring a friend to the platform",
        ]

        login = await client.post("/api/v1/auth/login", json={"email": "first@example.com", "password": "pw"})
        assert login.json()["user"]["customer"]["loyaltyPoints"] == 5


@pytest.mark.asyncio
async def test_register_business_and_validation(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        missing_name = await client.post(
            "/api/v1/auth/register",
            json={"email": "shop@example.com", "password": "pw", "user_type": "business"},
        )
        assert missing_name.status_code == 400
        assert missing_name.json()["detail"] == "Missing required fields"

        admin = await client.post(
            "/api/v1/auth/register",
            json={"email": "root@example.com", "password": "pw", "user_type": "admin"},
        )
        assert admin.status_code == 400

        created = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "shop@example.com",
                "password": "pw",
                "user_type": "business",
                "business_name": "Harare Coffee",
                "business_category": "Food",
            },
        )
        assert created.status_code == 201
        assert created.json()["user"]["business"]["businessName"] == "Harare Coffee"
        assert created.json()["awards"] == []

        duplicate = await client.post(
            "/api/v1/auth/register",
            json={"email": "SHOP@example.com", "password": "pw", "user_type": "customer"},
        )
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "User already exists"


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(app_with_db, seed) -> None:
    app, _ = app_with_db
    await seed.customer()

    async with _client(app) as client:
        wrong = await client.post("/api/v1/auth/login", json={"email": "customer@example.com", "password": "nope"})
        assert wrong.status_code == 401
        assert wrong.json()["detail"] == "Invalid credentials"

        unknown = await client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert unknown.status_code == 401

        empty = await client.post("/api/v1/auth/login", json={})
        assert empty.status_code == 400

        ok = await client.post("/api/v1/auth/login", json={"email": "Customer@Example.com", "password": "secret123"})
        assert ok.status_code == 200
        assert ok.json()["user"]["customer"]["fullName"] == "Tariro"


@pytest.mark.asyncio
async def test_me_requires_a_live_token(app_with_db, seed, auth_headers) -> None:
    app, _ = app_with_db
    business_id = await seed.business()

    async with _client(app) as client:
        anonymous = await client.get("/api/v1/auth/me")
        assert anonymous.status_code == 401
        assert anonymous.json()["detail"] == "Unauthorized"

        garbage = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert garbage.status_code == 401
        assert garbage.json()["detail"] == {"message": "Invalid token", "code": "STALE_TOKEN"}

        deleted = await client.get("/api/v1/auth/me", headers=auth_headers(uuid4(), "customer"))
        assert deleted.status_code == 401
        assert deleted.json()["detail"]["code"] == "STALE_TOKEN"

        me = await client.get("/api/v1/auth/me", headers=auth_headers(business_id, "business"))
        assert me.status_code == 200
        assert me.json()["business"]["businessName"] == "Harare Coffee"
        assert me.json()["customer"] is None


@pytest.mark.asyncio
async def test_role_guards_return_forbidden(app_with_db, seed, auth_headers) -> None:
    app, _ = app_with_db
    customer_id = await seed.customer()
    business_id = await seed.business()

    async with _client(app) as client:
        as_customer = await client.get("/api/v1/admin/offers", headers=auth_headers(customer_id, "customer"))
        assert as_customer.status_code == 403
        assert as_customer.json()["detail"] == "Access denied. Business account required."

        as_business = await client.get("/api/v1/customers/me", headers=auth_headers(business_id, "business"))
        assert as_business.status_code == 403
        assert as_business.json()["detail"] == "Access denied. Customer account required."
