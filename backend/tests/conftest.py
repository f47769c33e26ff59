import os

# Must be set before the application modules read their configuration
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-marketplace-tests-0123456789"
os.environ["JWT_ALGORITHM"] = "HS256"

import uuid
from datetime import datetime, timedelta

import jwt
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from config import get_db
from models import Base, UserProfile, Material
from main import app


def make_token(user_id: uuid.UUID, role: str = "vendor", email: str = None, expires_in: int = 3600) -> str:
    now = datetime.utcnow()
    payload = {
        "sub": str(user_id),
        "email": email or f"{user_id}@example.com",
        "user_metadata": {"role": role},
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, os.environ["JWT_SECRET_KEY"], algorithm="HS256")


def auth_headers(profile: UserProfile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.user_id, profile.role, profile.email)}"}


@pytest.fixture
async def engine(tmp_path):
    # File-backed so concurrent requests use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def create_profile(session_factory):
    async def _create(role: str = "vendor", **fields) -> UserProfile:
        defaults = {
            "user_id": uuid.uuid4(),
            "name": f"Test {role.title()}",
            "role": role,
        }
        if role == "supplier":
            defaults.update({
                "business_name": "Test Traders",
                "address": "12 Market Road",
                "city": "Mumbai",
                "state": "Maharashtra",
                "pincode": "400001",
                "latitude": 19.0760,
                "longitude": 72.8777,
                "specialties": ["Spices"],
            })
        defaults.update(fields)
        defaults.setdefault("email", f"{defaults['user_id']}@example.com")

        async with session_factory() as session:
            profile = UserProfile(**defaults)
            session.add(profile)
            await session.commit()
            await session.refresh(profile)
            return profile

    return _create


@pytest.fixture
def create_material(session_factory):
    async def _create(supplier: UserProfile, **fields) -> Material:
        defaults = {
            "supplier_id": supplier.id,
            "supplier_name": supplier.name,
            "name": "Turmeric Powder",
            "category": "Spices",
            "unit": "kg",
            "price": 120.0,
            "quantity": 100,
            "address": supplier.address or "12 Market Road",
            "city": supplier.city or "Mumbai",
            "state": supplier.state or "Maharashtra",
            "pincode": supplier.pincode or "400001",
            "latitude": supplier.latitude if supplier.latitude is not None else 19.0760,
            "longitude": supplier.longitude if supplier.longitude is not None else 72.8777,
        }
        defaults.update(fields)

        async with session_factory() as session:
            material = Material(**defaults)
            session.add(material)
            await session.commit()
            await session.refresh(material)
            return material

    return _create


@pytest.fixture
def get_material(session_factory):
    async def _get(material_id) -> Material:
        async with session_factory() as session:
            return await session.get(Material, material_id)

    return _get
