# tests/conftest.py: Shared test fixtures
import os

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTHZ_POLICY"] = "permissive"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ.pop("REDIS_URL", None)

from projecthub import cache
from projecthub.database import Base
from projecthub.dependencies import get_db
from projecthub.models import user, organization, project, task  # noqa: F401
from projecthub.models.user import User
from projecthub.main import app
from projecthub.utils.security import create_access_token, get_password_hash

TEST_PASSWORD = "Password123!"

fake = Faker()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_cache():
    cache.set_client(None)
    yield
    cache.set_client(None)


async def _make_user(db_session, email=None) -> User:
    user = User(
        email=email or fake.unique.email(),
        password_hash=get_password_hash(TEST_PASSWORD),
        first_name=fake.first_name(),
        last_name=fake.last_name(),
        timezone="UTC",
        locale="en",
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session):
    """A registered, active user"""
    return await _make_user(db_session)


@pytest_asyncio.fixture
async def other_user(db_session):
    return await _make_user(db_session)


@pytest.fixture
def make_user(db_session):
    async def factory(email=None):
        return await _make_user(db_session, email)
    return factory


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user):
    return get_auth_headers(test_user)


@pytest.fixture
def headers_for():
    return get_auth_headers


@pytest.fixture
def create_org(client):
    async def factory(headers, slug=None, parent_id=None, name=None):
        payload = {"name": name or fake.company(), "slug": slug or fake.unique.lexify("org????????")}
        if parent_id:
            payload["parent_id"] = parent_id
        res = await client.post("/organizations", json=payload, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()
    return factory


@pytest.fixture
def create_project(client):
    async def factory(headers, organization_id, name=None, **fields):
        payload = {"organization_id": organization_id, "name": name or fake.bs()[:100], **fields}
        res = await client.post("/projects", json=payload, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()
    return factory


@pytest.fixture
def project_statuses(client):
    async def fetch(headers, project_id):
        res = await client.get(f"/projects/{project_id}/statuses", headers=headers)
        assert res.status_code == 200, res.text
        return {s["name"]: s for s in res.json()}
    return fetch


@pytest.fixture
def create_task(client):
    async def factory(headers, project_id, status_id, title="Task", **fields):
        res = await client.post("/tasks", json={
            "project_id": project_id, "status_id": status_id, "title": title, **fields,
        }, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()
    return factory


@pytest_asyncio.fixture
async def board(auth_headers, create_org, create_project, project_statuses):
    """An organization with one project and its seeded statuses by name"""
    org = await create_org(auth_headers)
    project = await create_project(auth_headers, org["id"])
    statuses = await project_statuses(auth_headers, project["id"])
    return {"org": org, "project": project, "statuses": statuses}
