import pytest
from httpx import AsyncClient, ASGITransport
import os
import copy
from datetime import timedelta

# Set up test environment variables before anything else
os.environ["ENV"] = "testing"
os.environ["SECRET_KEY"] = "test_secret_key_12345"
os.environ["READ_STATE_BACKEND"] = "memory"

from config import config
config.ENV = "testing"

from main import app
from feed.hub import notification_hub
from feed.read_state import MemoryReadStateStore
from routes.deps import create_access_token


class FakeHRApi:
    """Stands in for HRApiClient: canned bodies per method, optional failures and gates."""

    def __init__(self, token=None):
        self.token = token
        self.closed = False
        self.calls = []
        self.failures = {}
        self.gates = {}
        self.responses = {
            "get_me": {"success": True, "user": {"_id": "emp_1", "role": "employee"}},
            "get_announcements": {"data": []},
            "get_chat_unread_count": {"unreadCount": 0},
            "get_chat_rooms": {"data": []},
            "get_leaves": {"data": []},
            "get_expenses": {"data": []},
            "get_my_edit_requests": {"data": []},
            "get_pending_leaves": {"data": []},
            "get_pending_edit_requests": {"data": []},
        }

    def set_token(self, token):
        self.token = token

    async def close(self):
        self.closed = True

    async def _respond(self, name):
        self.calls.append(name)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]
        return copy.deepcopy(self.responses[name])

    async def get_me(self):
        return await self._respond("get_me")

    async def get_announcements(self, limit=10):
        return await self._respond("get_announcements")

    async def get_chat_unread_count(self):
        return await self._respond("get_chat_unread_count")

    async def get_chat_rooms(self):
        return await self._respond("get_chat_rooms")

    async def get_leaves(self, limit=20):
        return await self._respond("get_leaves")

    async def get_expenses(self, limit=20):
        return await self._respond("get_expenses")

    async def get_my_edit_requests(self):
        return await self._respond("get_my_edit_requests")

    async def get_pending_leaves(self, limit=10):
        return await self._respond("get_pending_leaves")

    async def get_pending_edit_requests(self):
        return await self._respond("get_pending_edit_requests")


@pytest.fixture(scope="function")
def fake_api():
    return FakeHRApi()


@pytest.fixture(scope="function")
def read_store():
    return MemoryReadStateStore()


@pytest.fixture(scope="function")
async def configured_hub(fake_api, read_store):
    """Point the app's hub at the fake backend; long interval so only explicit passes run."""
    def api_factory(token):
        fake_api.set_token(token)
        return fake_api

    notification_hub.configure(
        api_factory=api_factory,
        read_store=read_store,
        poll_interval=3600,
        idle_timeout=3600,
    )
    yield notification_hub
    await notification_hub.shutdown()


@pytest.fixture(scope="function")
async def async_client(configured_hub):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


def _headers(claims: dict) -> dict:
    token = create_access_token(data=claims, expires_delta=timedelta(minutes=60))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers():
    return _headers({"sub": "emp_1", "role": "employee"})


@pytest.fixture(scope="function")
def hr_auth_headers():
    return _headers({"sub": "hr_1", "role": "hr"})


@pytest.fixture(scope="function")
def roleless_auth_headers():
    return _headers({"sub": "emp_1"})
