"""
Shared fixtures.

The app is driven in-process through httpx's ASGI transport against a
throw-away SQLite database; tables are recreated and seeded for every test.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="chemlab-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SIGN_IN_RATE_LIMIT"] = "1000/minute"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from app.core.config import MODULE  # noqa: E402
from app.core.database.engine import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from app.core.database.seed import ROOT_GROUP, seed_admin, seed_groups, seed_lookups  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.main import app  # noqa: E402
from tests.helpers import ADMIN, ADMIN_PASSWORD, bearer, password_hash  # noqa: E402


class Api:
    """Thin helpers over the HTTP surface used by most tests."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def sign_in(self, name: str, password: str) -> str:
        r = await self.client.put(f"/api/v1/user/{name}/token", json={"password": password})
        assert r.status_code == 200, r.json()
        return r.json()["data"]

    async def register(self, token: str, name: str, password: str) -> int:
        r = await self.client.post(f"/api/v1/user/{name}", json={"password": password}, headers=bearer(token))
        assert r.status_code == 200, r.json()
        return r.json()["data"]

    async def add_group(self, token: str, name: str, permission: str = "", note: str = "") -> int:
        r = await self.client.post(
            f"/api/v1/usergroup/{name}",
            json={"note": note, "permission": permission},
            headers=bearer(token),
        )
        assert r.status_code == 200, r.json()
        return r.json()["data"]

    async def patch_user(self, token: str, name: str, **fields) -> httpx.Response:
        return await self.client.patch(f"/api/v1/user/{name}", json=fields, headers=bearer(token))

    async def user_in_group(self, admin_token: str, name: str, group: str, password: str) -> str:
        """Register ``name``, move it to ``group`` and return its token."""
        await self.register(admin_token, name, password)
        r = await self.patch_user(admin_token, name, group=group)
        assert r.status_code == 200, r.json()
        return await self.sign_in(name, password)


@pytest_asyncio.fixture
async def database():
    await drop_db()
    await init_db()
    async with AsyncSessionLocal() as db:
        async with db.begin():
            groups = await seed_groups(db, MODULE)
            await seed_admin(db, groups[ROOT_GROUP], ADMIN, ADMIN_PASSWORD)
            await seed_lookups(db)
    limiter.reset()
    yield


@pytest_asyncio.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def api(client):
    return Api(client)


@pytest_asyncio.fixture
async def admin_token(api):
    return await api.sign_in(ADMIN, ADMIN_PASSWORD)


@pytest.fixture
def hashed():
    """``hashed("secret")`` -> uppercase SHA256, the wire format of passwords."""
    return password_hash
