import uuid
from types import SimpleNamespace

import jwt
import pytest

from conftest import auth_headers, make_token
from dependencies.rbac import has_permission, normalize_path, translate_method_to_action
from routers.auth.helpers import auth_helpers


@pytest.mark.parametrize("path, resource", [
    ("/users/me", "users/me"),
    ("/orders/123/status", "orders/status"),
    ("/orders/123/cancel", "orders"),
    ("/cart/add", "cart"),
    ("/materials", "materials"),
])
def test_normalize_path(path, resource):
    assert normalize_path(path) == resource


def test_method_to_action():
    assert translate_method_to_action("get") == "read"
    assert translate_method_to_action("PUT") == "write"
    assert translate_method_to_action("DELETE") == "delete"


def test_permission_matrix():
    assert has_permission("vendor", "cart", "write")
    assert not has_permission("supplier", "cart", "read")
    assert has_permission("supplier", "materials", "delete")
    assert not has_permission("vendor", "materials", "write")
    assert has_permission("supplier", "orders/status", "write")
    assert not has_permission("stranger", "materials", "read")


async def test_missing_token(client):
    response = await client.get("/users/me")

    assert response.status_code in (401, 403)


async def test_expired_token(client, create_profile):
    vendor = await create_profile("vendor")
    token = make_token(vendor.user_id, "vendor", expires_in=-60)

    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


async def test_token_signed_with_another_key(client, create_profile):
    vendor = await create_profile("vendor")
    token = jwt.encode({"sub": str(vendor.user_id)}, "some-other-secret-key-of-enough-length!", algorithm="HS256")

    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


async def test_token_without_profile(client):
    token = make_token(uuid.uuid4(), "vendor")

    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404


async def test_deactivated_account(client, create_profile):
    vendor = await create_profile("vendor", is_active=False)

    response = await client.get("/users/me", headers=auth_headers(vendor))

    assert response.status_code == 403


async def test_role_falls_back_to_profile(client, create_profile):
    supplier = await create_profile("supplier")
    token = make_token(supplier.user_id, role=None)

    response = await client.get("/cart", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


async def test_unknown_token_role_is_ignored(client, create_profile):
    vendor = await create_profile("vendor")
    token = make_token(vendor.user_id, role="superuser")

    response = await client.get("/cart", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200


async def test_get_and_update_profile(client, create_profile):
    vendor = await create_profile("vendor", name="Old Name")
    headers = auth_headers(vendor)

    data = (await client.get("/users/me", headers=headers)).json()
    assert data["name"] == "Old Name"
    assert data["role"] == "vendor"

    response = await client.put("/users/me", json={
        "name": "Sharma Chaat Corner",
        "location": {
            "latitude": 28.6139,
            "longitude": 77.2090,
            "address": "Chandni Chowk",
            "city": "Delhi",
            "state": "Delhi",
            "pincode": "110006",
        },
    }, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Sharma Chaat Corner"
    assert data["location"]["city"] == "Delhi"


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "OK"


class FakeSupabaseAuth:
    def __init__(self, user_id):
        self.user_id = user_id
        self.signed_up = []

    def sign_up(self, credentials):
        self.signed_up.append(credentials)
        return SimpleNamespace(
            user=SimpleNamespace(id=self.user_id),
            session=SimpleNamespace(access_token="access", refresh_token="refresh")
        )

    def sign_in_with_password(self, credentials):
        if credentials["password"] != "secret123":
            raise ValueError("Invalid login credentials")
        return SimpleNamespace(
            user=SimpleNamespace(id=self.user_id),
            session=SimpleNamespace(access_token="access", refresh_token="refresh")
        )


@pytest.fixture
def fake_auth(monkeypatch):
    fake = FakeSupabaseAuth(uuid.uuid4())
    monkeypatch.setattr(auth_helpers, "_supabase", SimpleNamespace(auth=fake))
    return fake


async def test_register_supplier_creates_profile(client, fake_auth):
    response = await client.post("/auth/register", json={
        "email": "ramesh@bazaar.in",
        "password": "secret123",
        "name": "Ramesh Traders",
        "role": "supplier",
        "location": {
            "latitude": 19.07,
            "longitude": 72.87,
            "address": "Crawford Market",
            "city": "Mumbai",
            "state": "Maharashtra",
            "pincode": "400001",
        },
        "specialties": ["Spices"],
    })

    assert response.status_code == 201
    data = response.json()
    assert data["access_token"] == "access"
    assert data["user"]["user_id"] == str(fake_auth.user_id)
    assert data["user"]["location"]["city"] == "Mumbai"
    assert fake_auth.signed_up[0]["options"]["data"]["role"] == "supplier"


async def test_supplier_registration_needs_location(client, fake_auth):
    response = await client.post("/auth/register", json={
        "email": "nolocation@bazaar.in",
        "password": "secret123",
        "name": "Nowhere Supplies",
        "role": "supplier",
    })

    assert response.status_code == 422
    assert fake_auth.signed_up == []


async def test_duplicate_email_is_rejected(client, fake_auth, create_profile):
    await create_profile("vendor", email="taken@bazaar.in")

    response = await client.post("/auth/register", json={
        "email": "taken@bazaar.in",
        "password": "secret123",
        "name": "Second Stall",
        "role": "vendor",
    })

    assert response.status_code == 400


async def test_login(client, fake_auth):
    response = await client.post("/auth/login", json={"email": "ramesh@bazaar.in", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["refresh_token"] == "refresh"

    response = await client.post("/auth/login", json={"email": "ramesh@bazaar.in", "password": "wrong"})
    assert response.status_code == 401
