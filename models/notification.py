from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal, Optional
from datetime import datetime


NotificationCategory = Literal[
    'announcement',
    'leave_approved', 'leave_rejected', 'leave_pending',
    'expense_approved', 'expense_rejected', 'expense_pending',
    'attendance_edit_approved', 'attendance_edit_rejected', 'attendance_edit_pending',
    'chat',
]


class Notification(BaseModel):
    """One entry of the unified feed, recomputed on every aggregation pass."""
    id: str  # Deterministic: derived from (source, record id, status)
    category: NotificationCategory

    # Content
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)

    occurred_at: datetime
    navigation_target: str

    # Overlaid from the read-state store, never persisted with the item
    read: bool = False

    model_config = ConfigDict(frozen=True)


class NotificationFeed(BaseModel):
    """Snapshot published to the consumer. Replaced wholesale, never patched in place."""
    notifications: List[Notification] = Field(default_factory=list)
    unread_count: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_notifications(cls, notifications: List[Notification]) -> "NotificationFeed":
        return cls(
            notifications=list(notifications),
            unread_count=sum(1 for n in notifications if not n.read),
        )

    @classmethod
    def empty(cls) -> "NotificationFeed":
        return cls()

    def with_read(self, ids) -> "NotificationFeed":
        """Return a copy with every notification whose id is in ``ids`` flipped to read."""
        ids = set(ids)
        return NotificationFeed.from_notifications([
            n.model_copy(update={"read": True}) if n.id in ids and not n.read else n
            for n in self.notifications
        ])

    @property
    def ids(self) -> List[str]:
        return [n.id for n in self.notifications]


class FeedStats(BaseModel):
    total: int = 0
    unread: int = 0
    approvals: int = 0
    rejections: int = 0

    @classmethod
    def from_feed(cls, feed: NotificationFeed) -> "FeedStats":
        return cls(
            total=len(feed.notifications),
            unread=feed.unread_count,
            approvals=sum(1 for n in feed.notifications if "approved" in n.category),
            rejections=sum(1 for n in feed.notifications if "rejected" in n.category),
        )


class Identity(BaseModel):
    """The logged-in user a feed belongs to."""
    user_id: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_complete(self) -> bool:
        return bool(self.user_id) and bool(self.role)


FeedFilter = Literal[
    'all', 'unread',
    'announcement',
    'leave_approved', 'leave_rejected', 'leave_pending',
    'expense_approved', 'expense_rejected', 'expense_pending',
    'attendance_edit_approved', 'attendance_edit_rejected', 'attendance_edit_pending',
    'chat',
]


def filter_notifications(feed: NotificationFeed, feed_filter: str = "all") -> List[Notification]:
    if feed_filter == "all":
        return list(feed.notifications)
    if feed_filter == "unread":
        return [n for n in feed.notifications if not n.read]
    return [n for n in feed.notifications if n.category == feed_filter]
