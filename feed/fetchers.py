"""
Notification sources.

Each fetcher calls one HR backend endpoint and maps its records onto ``Notification``.
Fetchers raise freely; ``collect_source`` is the single place where a failing
source is turned into an empty contribution so the rest of the pass carries on.
"""

from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from constants import (
    Roles, Categories, DecisionStatus, SourceCaps, CHAT_UNREAD_ID, navigation_target,
)
from logging_config import get_logger
from models.notification import Notification
from models.sources import (
    AnnouncementRecord, AttendanceEditRecord, ChatRoomRecord, DecisionRecord,
    ExpenseRecord, LeaveRecord, extract_records, extract_unread_count,
)

logger = get_logger("fetchers")


class SourceResult(BaseModel):
    """Outcome of one source for one pass. A failed source is ignored, not fatal."""
    source: str
    notifications: List[Notification] = []
    error: Optional[str] = None

    @property
    def ignored(self) -> bool:
        return self.error is not None


class SourceFetcher:
    name: str = ""
    roles: Optional[Tuple[str, ...]] = None  # None = every role
    cap: int = 0

    def __init__(self, api):
        self.api = api

    def applies_to(self, role: str) -> bool:
        return self.roles is None or role in self.roles

    def validate_records(self, model: Type[BaseModel], raw: Sequence[Any]) -> List[Any]:
        """Validate records one by one; a malformed record is skipped, not fatal to its siblings."""
        records = []
        for index, item in enumerate(raw):
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed record from '{self.name}'",
                    extra={"data": {"source": self.name, "index": index, "errors": e.errors(include_url=False)}}
                )
        return records

    async def fetch(self, role: str, now: datetime) -> List[Notification]:
        raise NotImplementedError


async def collect_source(fetcher: SourceFetcher, role: str, now: datetime) -> SourceResult:
    """Run ``fetcher`` under the fail-closed policy: any error yields an empty, ignored result."""
    try:
        notifications = await fetcher.fetch(role, now)
    except Exception as e:
        logger.warning(
            f"Source '{fetcher.name}' failed, contributing nothing this pass: {e}",
            extra={"data": {"source": fetcher.name, "error": repr(e)}}
        )
        return SourceResult(source=fetcher.name, error=repr(e))
    return SourceResult(source=fetcher.name, notifications=notifications[:fetcher.cap])


# ─── Announcements ───────────────────────────────────────────────────────────

class AnnouncementsFetcher(SourceFetcher):
    name = "announcements"
    cap = SourceCaps.ANNOUNCEMENTS

    async def fetch(self, role: str, now: datetime) -> List[Notification]:
        body = await self.api.get_announcements()
        records = self.validate_records(AnnouncementRecord, extract_records(body, "data", "announcements"))
        link = navigation_target("announcements", role)
        return [
            Notification(
                id=f"ann_{a.id}",
                category=Categories.ANNOUNCEMENT,
                title="New Announcement",
                message=a.title or "Company announcement",
                occurred_at=a.created_at or now,
                navigation_target=link,
            )
            for a in records[:self.cap]
        ]


# ─── Chat ────────────────────────────────────────────────────────────────────

class ChatUnreadFetcher(SourceFetcher):
    """
    Collapses all unread chat messages into the single ``chat_unread_bulk`` item.
    The unread-count endpoint is asked first; when it says zero (or fails) the
    per-room counters are summed instead.
    """
    name = "chat_unread"
    cap = SourceCaps.CHAT_UNREAD

    async def _primary_count(self) -> int:
        try:
            return extract_unread_count(await self.api.get_chat_unread_count())
        except Exception as e:
            logger.debug(f"Chat unread endpoint failed, falling back to rooms: {e}")
            return 0

    async def _rooms_count(self) -> int:
        rooms = extract_records(await self.api.get_chat_rooms(), "data", "rooms")
        return sum(ChatRoomRecord.model_validate(r).unread_count for r in rooms if isinstance(r, dict))

    async def fetch(self, role: str, now: datetime) -> List[Notification]:
        count = await self._primary_count()
        if not count:
            count = await self._rooms_count()
        if count <= 0:
            return []
        return [
            Notification(
                id=CHAT_UNREAD_ID,
                category=Categories.CHAT,
                title="Unread Messages",
                message=f"You have {count} unread message{'s' if count > 1 else ''}",
                occurred_at=now,
                navigation_target=navigation_target("chat", role),
            )
        ]


# ─── Resolved decisions (employee & HR) ──────────────────────────────────────

class DecisionFetcher(SourceFetcher):
    """Approved / rejected requests of the current user, newest first as the backend orders them."""
    roles = (Roles.EMPLOYEE, Roles.HR)
    cap = 5

    id_prefix: str = ""
    area: str = ""
    record_model: Type[DecisionRecord] = DecisionRecord
    record_keys: Tuple[str, ...] = ("data",)
    categories: dict = {}
    titles: dict = {}

    async def load(self) -> Any:
        raise NotImplementedError

    def describe(self, record) -> str:
        raise NotImplementedError

    def occurred_at(self, record, now: datetime) -> datetime:
        return record.updated_at or record.created_at or now

    async def fetch(self, role: str, now: datetime) -> List[Notification]:
        body = await self.load()
        records = self.validate_records(self.record_model, extract_records(body, *self.record_keys))
        resolved = [r for r in records if r.status in DecisionStatus.RESOLVED]
        link = navigation_target(self.area, role)
        return [
            Notification(
                id=f"{self.id_prefix}_{r.id}_{r.status}",
                category=self.categories[r.status],
                title=self.titles[r.status],
                message=self.describe(r),
                occurred_at=self.occurred_at(r, now),
                navigation_target=link,
            )
            for r in resolved[:self.cap]
        ]


class LeaveDecisionsFetcher(DecisionFetcher):
    name = "leave_decisions"
    cap = SourceCaps.LEAVE_DECISIONS
    id_prefix = "leave"
    area = "leave"
    record_model = LeaveRecord
    record_keys = ("data", "leaves")
    categories = {
        DecisionStatus.APPROVED: Categories.LEAVE_APPROVED,
        DecisionStatus.REJECTED: Categories.LEAVE_REJECTED,
    }
    titles = {
        DecisionStatus.APPROVED: "Leave Approved",
        DecisionStatus.REJECTED: "Leave Rejected",
    }

    async def load(self) -> Any:
        return await self.api.get_leaves()

    def describe(self, record: LeaveRecord) -> str:
        start = record.start_date.date().isoformat() if record.start_date else "-"
        return f"Your {record.leave_type or 'leave'} request ({start}) was {record.status}"


class ExpenseDecisionsFetcher(DecisionFetcher):
    name = "expense_decisions"
    cap = SourceCaps.EXPENSE_DECISIONS
    id_prefix = "exp"
    area = "expense"
    record_model = ExpenseRecord
    record_keys = ("data", "expenses")
    categories = {
        DecisionStatus.APPROVED: Categories.EXPENSE_APPROVED,
        DecisionStatus.REJECTED: Categories.EXPENSE_REJECTED,
    }
    titles = {
        DecisionStatus.APPROVED: "Expense Approved",
        DecisionStatus.REJECTED: "Expense Rejected",
    }

    async def load(self) -> Any:
        return await self.api.get_expenses()

    def describe(self, record: ExpenseRecord) -> str:
        return f'Your expense "{record.title or record.description or "request"}" was {record.status}'


class AttendanceEditDecisionsFetcher(DecisionFetcher):
    name = "attendance_edit_decisions"
    cap = SourceCaps.ATTENDANCE_EDIT_DECISIONS
    id_prefix = "attedit"
    area = "attendance"
    record_model = AttendanceEditRecord
    record_keys = ("data", "requests", "editRequests")
    categories = {
        DecisionStatus.APPROVED: Categories.ATTENDANCE_EDIT_APPROVED,
        DecisionStatus.REJECTED: Categories.ATTENDANCE_EDIT_REJECTED,
    }
    titles = {
        DecisionStatus.APPROVED: "Attendance Edit Approved",
        DecisionStatus.REJECTED: "Attendance Edit Rejected",
    }

    async def load(self) -> Any:
        return await self.api.get_my_edit_requests()

    def describe(self, record: AttendanceEditRecord) -> str:
        return f"Your attendance correction was {record.status}"

    def occurred_at(self, record: AttendanceEditRecord, now: datetime) -> datetime:
        return record.reviewed_at or record.updated_at or record.created_at or now


# ─── Pending approvals (HR & admin) ──────────────────────────────────────────

class PendingApprovalsFetcher(SourceFetcher):
    """Requests awaiting the current HR/admin user's review. The endpoint returns pending items only."""
    roles = (Roles.HR, Roles.ADMIN)
    cap = 3

    id_prefix: str = ""
    area: str = ""
    category: str = ""
    title: str = ""
    record_model: Type[DecisionRecord] = DecisionRecord
    record_keys: Tuple[str, ...] = ("data",)

    async def load(self) -> Any:
        raise NotImplementedError

    def describe(self, record) -> str:
        raise NotImplementedError

    async def fetch(self, role: str, now: datetime) -> List[Notification]:
        body = await self.load()
        records = self.validate_records(self.record_model, extract_records(body, *self.record_keys))
        link = navigation_target(self.area, role)
        return [
            Notification(
                id=f"{self.id_prefix}_{r.id}",
                category=self.category,
                title=self.title,
                message=self.describe(r),
                occurred_at=r.created_at or now,
                navigation_target=link,
            )
            for r in records[:self.cap]
        ]


class PendingLeavesFetcher(PendingApprovalsFetcher):
    name = "pending_leaves"
    cap = SourceCaps.PENDING_LEAVES
    id_prefix = "pending_leave"
    area = "leave"
    category = Categories.LEAVE_PENDING
    title = "Leave Request Pending"
    record_model = LeaveRecord
    record_keys = ("data", "leaves")

    async def load(self) -> Any:
        return await self.api.get_pending_leaves()

    def describe(self, record: LeaveRecord) -> str:
        return f"{record.requester_name} requested {record.leave_type or 'leave'} - awaiting review"


class PendingAttendanceEditsFetcher(PendingApprovalsFetcher):
    name = "pending_attendance_edits"
    cap = SourceCaps.PENDING_ATTENDANCE_EDITS
    id_prefix = "pending_edit"
    area = "attendance"
    category = Categories.ATTENDANCE_EDIT_PENDING
    title = "Attendance Edit Request"
    record_model = AttendanceEditRecord
    record_keys = ("data", "requests", "editRequests")

    async def load(self) -> Any:
        return await self.api.get_pending_edit_requests()

    def describe(self, record: AttendanceEditRecord) -> str:
        return f"{record.requester_name} requested attendance correction"


# Order matters: it is the tie-break order for items with equal timestamps.
DEFAULT_FETCHERS: Sequence[Callable[[Any], SourceFetcher]] = (
    AnnouncementsFetcher,
    ChatUnreadFetcher,
    LeaveDecisionsFetcher,
    ExpenseDecisionsFetcher,
    AttendanceEditDecisionsFetcher,
    PendingLeavesFetcher,
    PendingAttendanceEditsFetcher,
)


def build_fetchers(api) -> List[SourceFetcher]:
    return [factory(api) for factory in DEFAULT_FETCHERS]
