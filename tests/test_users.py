"""Tests for admin user management, change-password and the health check."""

import pytest
from httpx import AsyncClient


def _user_body(email: str, **extra) -> dict:
    body = {
        "email": email,
        "firstName": "Grace",
        "lastName": "Hopper",
        "mobileNumber": "+12025550143",
        "address": {"location": "Arlington", "coordinates": {"lat": 38.88, "lng": -77.1}},
    }
    body.update(extra)
    return body


@pytest.mark.asyncio
async def test_create_user_without_password_is_invited(async_client: AsyncClient, admin_headers, fetch_user):
    resp = await async_client.post("/api/users", json=_user_body("grace@example.com"), headers=admin_headers)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["email"] == "grace@example.com"
    assert data["role"] == "user"
    assert data["address"]["coordinates"] == {"lat": 38.88, "lng": -77.1}
    assert "hashedPassword" not in data

    user = await fetch_user("grace@example.com")
    assert user.hashed_password is None
    assert user.is_first_login is True


@pytest.mark.asyncio
async def test_create_user_with_password_can_log_in(async_client: AsyncClient, admin_headers):
    body = _user_body("ready@example.com", password="ready-pw", role="admin")
    resp = await async_client.post("/api/users", json=body, headers=admin_headers)
    assert resp.status_code == 201

    login = await async_client.post("/api/auth/login", json={"email": "ready@example.com", "password": "ready-pw"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_create_user_duplicate_email(async_client: AsyncClient, admin_headers, regular_user):
    resp = await async_client.post("/api/users", json=_user_body(regular_user.email.upper()), headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "message": "User already exists"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [{"role": "superuser"}, {"email": "not-an-email"}, {"mobileNumber": "555"}, {"password": "123"}],
)
async def test_create_user_validation(async_client: AsyncClient, admin_headers, override):
    body = {**_user_body("v@example.com"), **override}
    resp = await async_client.post("/api/users", json=body, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["message"] == "Validation failed"


@pytest.mark.asyncio
async def test_list_users_filters_and_paginates(async_client: AsyncClient, admin_headers, make_user):
    for n in range(3):
        await make_user(f"staff{n}@example.com")
    await make_user("boss2@example.com", role="admin")

    admins = await async_client.get("/api/users?role=admin", headers=admin_headers)
    assert {u["email"] for u in admins.json()["data"]} == {"admin@example.com", "boss2@example.com"}

    page = await async_client.get("/api/users?sort=email&limit=2", headers=admin_headers)
    body = page.json()
    assert body["count"] == 2
    assert [u["email"] for u in body["data"]] == ["admin@example.com", "boss2@example.com"]
    assert body["pagination"] == {"next": {"page": 2, "limit": 2}}


@pytest.mark.asyncio
async def test_get_and_update_user(async_client: AsyncClient, admin_headers, regular_user):
    got = await async_client.get(f"/api/users/{regular_user.id}", headers=admin_headers)
    assert got.status_code == 200
    assert got.json()["data"]["email"] == regular_user.email

    resp = await async_client.put(
        f"/api/users/{regular_user.id}",
        json={"firstName": "Renamed", "mobileNumber": "+15559998888"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["firstName"] == "Renamed"
    assert data["mobileNumber"] == "+15559998888"
    assert data["lastName"] == "User"


@pytest.mark.asyncio
async def test_update_user_email_conflict(async_client: AsyncClient, admin_user, admin_headers, regular_user):
    resp = await async_client.put(
        f"/api/users/{regular_user.id}", json={"email": admin_user.email}, headers=admin_headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["firstName", "role", "isActive", "mobileNumber"])
async def test_update_user_ignores_null_for_required_fields(
    async_client: AsyncClient, admin_headers, regular_user, fetch_user, field
):
    resp = await async_client.put(f"/api/users/{regular_user.id}", json={field: None}, headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["firstName"] == "Test"
    assert data["role"] == "user"
    assert data["isActive"] is True

    user = await fetch_user(regular_user.email)
    assert user.is_active is True
    listing = await async_client.get("/api/users", headers=admin_headers)
    assert listing.status_code == 200


@pytest.mark.asyncio
async def test_update_user_can_clear_address(async_client: AsyncClient, admin_headers, make_user):
    user = await make_user("home@example.com", address={"location": "Somewhere"})
    resp = await async_client.put(f"/api/users/{user.id}", json={"address": None}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["address"] is None


@pytest.mark.asyncio
async def test_unknown_user_is_404(async_client: AsyncClient, admin_headers):
    assert (await async_client.get("/api/users/9999", headers=admin_headers)).status_code == 404
    assert (await async_client.put("/api/users/9999", json={}, headers=admin_headers)).status_code == 404
    assert (await async_client.delete("/api/users/9999", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_delete_deactivates_user(async_client: AsyncClient, admin_headers, regular_user, fetch_user):
    resp = await async_client.delete(f"/api/users/{regular_user.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert (await fetch_user(regular_user.email)).is_active is False

    login = await async_client.post("/api/auth/login", json={"email": regular_user.email, "password": "password123"})
    assert login.status_code == 401
    assert login.json()["message"] == "Your account is disabled"


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(async_client: AsyncClient, admin_user, admin_headers):
    resp = await async_client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_user_management_is_admin_only(async_client: AsyncClient, regular_user, user_headers):
    calls = [
        async_client.get("/api/users", headers=user_headers),
        async_client.post("/api/users", json=_user_body("x@example.com"), headers=user_headers),
        async_client.get(f"/api/users/{regular_user.id}", headers=user_headers),
        async_client.delete(f"/api/users/{regular_user.id}", headers=user_headers),
    ]
    for call in calls:
        resp = await call
        assert resp.status_code == 403
        assert resp.json()["success"] is False


# ── Change password ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient, regular_user, user_headers):
    resp = await async_client.put(
        "/api/users/change-password",
        json={"currentPassword": "password123", "newPassword": "fresh-pw"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Password updated successfully"}

    login = await async_client.post("/api/auth/login", json={"email": regular_user.email, "password": "fresh-pw"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(async_client: AsyncClient, user_headers):
    resp = await async_client.put(
        "/api/users/change-password",
        json={"currentPassword": "guess", "newPassword": "fresh-pw"},
        headers=user_headers,
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_change_password_before_setup(async_client: AsyncClient, make_user, headers_for):
    invited = await make_user("fresh@example.com", password=None)
    resp = await async_client.put(
        "/api/users/change-password",
        json={"currentPassword": "whatever", "newPassword": "fresh-pw"},
        headers=headers_for(invited),
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Please set up your password first"


# ── Health ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "db": True, "version": "1.0.0"}
