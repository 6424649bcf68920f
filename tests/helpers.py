"""
Shared fixtures: a throwaway SQLite database per test case, in-memory storage
and a relay that records what it would have sent.
"""
import tempfile
import unittest

import httpx
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from database import build_sessionmaker, get_db, init_db
from models import Role
from services import users as user_service
from services.errors import RelayError
from services.feed import ChangeFeed
from services.storage import FallbackObjectStore, MemoryObjectStore


class FailingObjectStore(MemoryObjectStore):
    """Backend that rejects every operation."""

    def __init__(self, name: str = "broken"):
        super().__init__(name=name)
        self.attempts = 0

    async def put(self, key, data, content_type):
        self.attempts += 1
        raise OSError(f"{self.name} unavailable")

    async def get(self, key):
        self.attempts += 1
        raise OSError(f"{self.name} unavailable")

    async def delete(self, key):
        self.attempts += 1
        raise OSError(f"{self.name} unavailable")


class RecordingRelay:
    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail

    async def send(self, text: str) -> None:
        if self.fail:
            raise RelayError("Telegram API error: 500")
        self.sent.append(text)


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.engine = create_async_engine(
            f"sqlite+aiosqlite:///{self._tmp.name}/test.db",
            poolclass=NullPool,
        )
        self.Session = build_sessionmaker(self.engine)
        await init_db(self.engine)

    async def asyncTearDown(self):
        await self.engine.dispose()
        self._tmp.cleanup()

    async def create_user(self, email: str, role: Role | None = Role.CLIENT, password: str = "correct-horse"):
        async with self.Session() as session:
            user = await user_service.signup(session, email=email, password=password, first_name="Test")
            if role is not None:
                await user_service.set_role(session, user.id, role)
            await session.commit()
            return user.id


class ApiTestCase(DatabaseTestCase):
    """Drives the FastAPI app in-process with storage, relay and feed replaced."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        from api.deps import get_chat_feed, get_object_store, get_relay
        from main import app

        self.app = app
        self.primary = MemoryObjectStore(name="primary")
        self.secondary = MemoryObjectStore(name="secondary")
        self.store = FallbackObjectStore(self.primary, self.secondary)
        self.relay = RecordingRelay()
        self.feed = ChangeFeed()

        async def override_db():
            async with self.Session() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_object_store] = lambda: self.store
        app.dependency_overrides[get_relay] = lambda: self.relay
        app.dependency_overrides[get_chat_feed] = lambda: self.feed

        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        self.app.dependency_overrides.clear()
        await super().asyncTearDown()

    async def login(self, email: str, password: str = "correct-horse") -> dict:
        resp = await self.client.post("/api/auth/login", json={"email": email, "password": password})
        self.assertEqual(resp.status_code, 200, resp.text)
        return {"Authorization": f"Bearer {resp.json()['accessToken']}"}

    async def client_with_application(self, email: str = "client@example.com") -> tuple[dict, dict]:
        await self.create_user(email)
        headers = await self.login(email)
        resp = await self.client.post(
            "/api/applications",
            json={"loanType": "Equipment Financing", "loanAmount": 75000},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return headers, resp.json()
