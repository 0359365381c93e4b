import pytest
from datetime import datetime, timezone

from feed.aggregator import NotificationAggregator, merge_results, sort_newest_first
from feed.fetchers import SourceResult, build_fetchers
from models.notification import Notification
from utils.hr_api import HRApiError

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make(id: str, day: int, read: bool = False) -> Notification:
    return Notification(
        id=id,
        category="announcement",
        title="New Announcement",
        message=id,
        occurred_at=datetime(2026, 10, day, tzinfo=timezone.utc),
        navigation_target="/employee/announcements",
        read=read,
    )


@pytest.fixture
def aggregator(fake_api, read_store):
    return NotificationAggregator(read_store, build_fetchers(fake_api))


async def test_single_announcement_unread(aggregator, fake_api):
    fake_api.responses["get_announcements"] = {"data": [{"_id": "A1", "createdAt": "2026-10-01T08:00:00Z"}]}

    feed = await aggregator.aggregate("emp_1", "employee", now=NOW)

    assert [n.id for n in feed.notifications] == ["ann_A1"]
    assert feed.notifications[0].read is False
    assert feed.unread_count == 1


async def test_missing_identity_yields_empty_feed(aggregator, fake_api):
    assert (await aggregator.aggregate(None, "employee")).notifications == []
    assert (await aggregator.aggregate("emp_1", "")).unread_count == 0
    assert fake_api.calls == []


async def test_failing_source_does_not_abort_pass(aggregator, fake_api):
    fake_api.failures["get_expenses"] = HRApiError("/expenses", "ConnectError('refused')")
    fake_api.responses["get_announcements"] = {"data": [
        {"_id": "A1", "createdAt": "2026-10-02T08:00:00Z"},
        {"_id": "A2", "createdAt": "2026-10-01T08:00:00Z"},
    ]}

    feed = await aggregator.aggregate("emp_1", "employee", now=NOW)

    assert [n.id for n in feed.notifications] == ["ann_A1", "ann_A2"]
    assert not any(n.id.startswith("exp_") for n in feed.notifications)


async def test_every_source_failing_still_publishes(aggregator, fake_api):
    for name in list(fake_api.responses):
        fake_api.failures[name] = RuntimeError("backend down")

    feed = await aggregator.aggregate("hr_1", "hr", now=NOW)

    assert feed.notifications == []
    assert feed.unread_count == 0


async def test_ids_are_identical_across_passes(aggregator, fake_api):
    fake_api.responses["get_leaves"] = {"data": [{"_id": "L1", "status": "approved"}]}
    fake_api.responses["get_pending_leaves"] = {"data": [{"_id": "L9"}]}
    fake_api.responses["get_chat_unread_count"] = {"count": 3}

    first = await aggregator.aggregate("hr_1", "hr")
    second = await aggregator.aggregate("hr_1", "hr")

    assert first.ids == second.ids
    assert set(first.ids) == {"leave_L1_approved", "pending_leave_L9", "chat_unread_bulk"}


async def test_read_state_is_overlaid(aggregator, fake_api, read_store):
    fake_api.responses["get_announcements"] = {"data": [{"_id": "A1"}, {"_id": "A2"}]}
    await read_store.save_read_ids("emp_1", {"ann_A2", "ann_gone"})

    feed = await aggregator.aggregate("emp_1", "employee", now=NOW)

    read = {n.id: n.read for n in feed.notifications}
    assert read == {"ann_A1": False, "ann_A2": True}
    assert feed.unread_count == 1


async def test_role_gating_controls_which_endpoints_are_called(aggregator, fake_api):
    await aggregator.aggregate("adm_1", "admin", now=NOW)
    assert set(fake_api.calls) == {
        "get_announcements", "get_chat_unread_count", "get_chat_rooms",
        "get_pending_leaves", "get_pending_edit_requests",
    }

    fake_api.calls.clear()
    await aggregator.aggregate("cli_1", "client", now=NOW)
    assert set(fake_api.calls) == {"get_announcements", "get_chat_unread_count", "get_chat_rooms"}


async def test_pending_leave_never_reaches_employee(aggregator, fake_api):
    fake_api.responses["get_leaves"] = {"data": [{"_id": "L1", "status": "pending"}]}
    feed = await aggregator.aggregate("emp_1", "employee", now=NOW)
    assert feed.notifications == []


async def test_feed_sorted_newest_first_across_sources(aggregator, fake_api):
    fake_api.responses["get_announcements"] = {"data": [{"_id": "A1", "createdAt": "2026-10-01T08:00:00Z"}]}
    fake_api.responses["get_leaves"] = {"data": [
        {"_id": "L1", "status": "approved", "updatedAt": "2026-10-03T08:00:00Z"},
    ]}
    fake_api.responses["get_expenses"] = {"data": [
        {"_id": "E1", "status": "rejected", "updatedAt": "2026-10-02T08:00:00Z"},
    ]}
    fake_api.responses["get_chat_unread_count"] = {"unreadCount": 2}

    feed = await aggregator.aggregate("emp_1", "employee", now=NOW)

    assert feed.ids == ["chat_unread_bulk", "leave_L1_approved", "exp_E1_rejected", "ann_A1"]


async def test_equal_timestamps_keep_source_order():
    a, b, c = make("a", 5), make("b", 5), make("c", 6)
    assert [n.id for n in sort_newest_first([a, b, c])] == ["c", "a", "b"]
    assert [n.id for n in sort_newest_first([b, a, c])] == ["c", "b", "a"]


async def test_merge_dedups_by_id_keeping_first():
    first = SourceResult(source="one", notifications=[make("x", 1), make("y", 2)])
    second = SourceResult(source="two", notifications=[make("x", 9), make("z", 3)])
    merged = merge_results([first, second])
    assert [n.id for n in merged] == ["x", "y", "z"]
    assert merged[0].occurred_at.day == 1
