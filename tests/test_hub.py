import pytest

from feed.hub import NotificationHub
from feed.poller import FeedPoller
from models.notification import Identity

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def hub(fake_api, read_store):
    def api_factory(token):
        fake_api.set_token(token)
        return fake_api

    hub = NotificationHub(api_factory=api_factory, read_store=read_store, poll_interval=3600, idle_timeout=3600)
    yield hub
    await hub.shutdown()


async def test_one_session_per_user(hub):
    first = await hub.session_for(Identity(user_id="u1", role="employee"), "t1")
    again = await hub.session_for(Identity(user_id="u1", role="employee"), "t1")
    other = await hub.session_for(Identity(user_id="u2", role="hr"), "t2")

    assert first is again
    assert first is not other
    assert len(hub) == 2


async def test_token_refreshed_on_every_request(hub, fake_api):
    await hub.session_for(Identity(user_id="u1", role="employee"), "old")
    await hub.session_for(Identity(user_id="u1", role="employee"), "new")
    assert fake_api.token == "new"


async def test_role_change_retargets_existing_session(hub):
    session = await hub.session_for(Identity(user_id="u1", role="employee"), "t")
    generation = session.generation

    same = await hub.session_for(Identity(user_id="u1", role="admin"), "t")

    assert same is session
    assert session.identity.role == "admin"
    assert session.generation == generation + 1


async def test_idle_sessions_are_evicted(hub, fake_api):
    session = await hub.session_for(Identity(user_id="u1", role="employee"), "t")
    hub.idle_timeout = 0
    session.last_seen -= 1

    await hub.evict_idle()

    assert hub.get("u1") is None
    assert session.poller.state == FeedPoller.IDLE
    assert fake_api.closed is True


async def test_shutdown_stops_everything(hub):
    a = await hub.session_for(Identity(user_id="u1", role="employee"), "t")
    b = await hub.session_for(Identity(user_id="u2", role="client"), "t")

    await hub.shutdown()

    assert len(hub) == 0
    assert a.poller.state == FeedPoller.IDLE
    assert b.poller.state == FeedPoller.IDLE
