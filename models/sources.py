"""
Typed views of the HR backend records the notification sources read.

Every field except the record id is optional: the backend omits fields freely,
and each mapping in ``feed.fetchers`` states its own fallback for a missing one.
"""

from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator
from typing import Any, List, Optional, Union
from datetime import datetime, timezone


def parse_timestamp(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Parse an ISO timestamp, returning None for anything unusable. Naive values are UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            if "T" in value:
                parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
            else:
                parsed = datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_records(body: Any, *keys: str) -> List[dict]:
    """
    Pull the record list out of a response body.
    Handles { data: [] }, { leaves: [] }, { requests: [] } and bare lists.
    """
    if isinstance(body, dict):
        for key in keys:
            if isinstance(body.get(key), list):
                return body[key]
        return []
    if isinstance(body, list):
        return body
    return []


def extract_unread_count(body: Any) -> int:
    """Read the chat unread counter from ``unreadCount``, ``count`` or ``total``."""
    if not isinstance(body, dict):
        return 0
    for key in ("unreadCount", "count", "total"):
        value = body.get(key)
        if value is not None:
            try:
                return max(int(value), 0)
            except (TypeError, ValueError):
                return 0
    return 0


class PersonRef(BaseModel):
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SourceRecord(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    created_at: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))
    updated_at: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("updatedAt", "updated_at"))

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        if value is None or value == "":
            raise ValueError("record id is required")
        return str(value)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value):
        return parse_timestamp(value)


class AnnouncementRecord(SourceRecord):
    title: Optional[str] = None
    content: Optional[str] = None


class DecisionRecord(SourceRecord):
    """A request that HR resolves: leave, expense or attendance edit."""
    status: Optional[str] = None
    user: Optional[PersonRef] = Field(default=None, validation_alias=AliasChoices("user", "employee"))

    @field_validator("user", mode="before")
    @classmethod
    def _populated_user_only(cls, value):
        # Unpopulated references arrive as a bare id string
        return value if isinstance(value, dict) else None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return value.lower() if isinstance(value, str) else None

    @property
    def requester_name(self) -> str:
        return (self.user.name if self.user else None) or "An employee"


class LeaveRecord(DecisionRecord):
    leave_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("leaveType", "leave_type"))
    start_date: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("startDate", "start_date"))

    @field_validator("start_date", mode="before")
    @classmethod
    def _lenient_start_date(cls, value):
        return parse_timestamp(value)


class ExpenseRecord(DecisionRecord):
    title: Optional[str] = None
    description: Optional[str] = None


class AttendanceEditRecord(DecisionRecord):
    reviewed_at: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("reviewedAt", "reviewed_at"))

    @field_validator("reviewed_at", mode="before")
    @classmethod
    def _lenient_reviewed_at(cls, value):
        return parse_timestamp(value)


class ChatRoomRecord(BaseModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    unread_count: int = Field(default=0, validation_alias=AliasChoices("unreadCount", "unread_count"))

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if value is not None else None

    @field_validator("unread_count", mode="before")
    @classmethod
    def _lenient_count(cls, value):
        try:
            return max(int(value or 0), 0)
        except (TypeError, ValueError):
            return 0
