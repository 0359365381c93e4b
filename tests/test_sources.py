import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from models.sources import (
    AnnouncementRecord, AttendanceEditRecord, ChatRoomRecord, ExpenseRecord, LeaveRecord,
    extract_records, extract_unread_count, parse_timestamp,
)


def test_extract_records_prefers_first_matching_key():
    body = {"success": True, "data": [{"_id": "1"}], "leaves": [{"_id": "2"}]}
    assert extract_records(body, "data", "leaves") == [{"_id": "1"}]
    assert extract_records({"leaves": [{"_id": "2"}]}, "data", "leaves") == [{"_id": "2"}]


def test_extract_records_accepts_bare_list_and_rejects_junk():
    assert extract_records([{"_id": "1"}], "data") == [{"_id": "1"}]
    assert extract_records({"data": {"nested": []}}, "data") == []
    assert extract_records(None, "data") == []
    assert extract_records("oops", "data") == []


def test_extract_unread_count_fallback_keys():
    assert extract_unread_count({"unreadCount": 4}) == 4
    assert extract_unread_count({"count": "2"}) == 2
    assert extract_unread_count({"total": 7}) == 7
    assert extract_unread_count({"unreadCount": "n/a"}) == 0
    assert extract_unread_count({}) == 0
    assert extract_unread_count([]) == 0


def test_parse_timestamp_variants():
    assert parse_timestamp("2026-03-01T10:00:00.000Z") == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2026-03-01") == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2026-03-01T10:00:00") == datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(12345) is None


def test_announcement_record_aliases():
    record = AnnouncementRecord.model_validate(
        {"_id": "a1", "title": "Holiday", "createdAt": "2026-03-01T10:00:00Z", "author": "x"}
    )
    assert record.id == "a1"
    assert record.title == "Holiday"
    assert record.created_at.year == 2026


def test_record_without_id_is_rejected():
    with pytest.raises(ValidationError):
        AnnouncementRecord.model_validate({"title": "No id"})


def test_unparseable_timestamp_becomes_none():
    record = ExpenseRecord.model_validate({"_id": 5, "status": "APPROVED", "updatedAt": "soon"})
    assert record.id == "5"
    assert record.status == "approved"
    assert record.updated_at is None


def test_leave_record_requester_from_populated_user_only():
    populated = LeaveRecord.model_validate({"_id": "l1", "user": {"name": "Asha"}, "leaveType": "sick"})
    assert populated.requester_name == "Asha"
    assert populated.leave_type == "sick"

    bare = LeaveRecord.model_validate({"_id": "l2", "user": "64ab12"})
    assert bare.requester_name == "An employee"

    employee = AttendanceEditRecord.model_validate({"_id": "r1", "employee": {"name": "Ravi"}})
    assert employee.requester_name == "Ravi"


def test_chat_room_unread_count_defaults():
    assert ChatRoomRecord.model_validate({"_id": "r", "unreadCount": 3}).unread_count == 3
    assert ChatRoomRecord.model_validate({"_id": "r"}).unread_count == 0
    assert ChatRoomRecord.model_validate({"unreadCount": None}).unread_count == 0
    assert ChatRoomRecord.model_validate({"unreadCount": -2}).unread_count == 0
