import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from feed.fetchers import SourceFetcher, SourceResult, collect_source
from feed.read_state import ReadStateStore
from logging_config import get_logger
from models.notification import Notification, NotificationFeed

logger = get_logger("aggregator")


def merge_results(results: Sequence[SourceResult]) -> List[Notification]:
    """Concatenate source outputs in source order, keeping the first item for each id."""
    seen = set()
    merged = []
    for result in results:
        for notification in result.notifications:
            if notification.id in seen:
                continue
            seen.add(notification.id)
            merged.append(notification)
    return merged


def overlay_read_state(notifications: List[Notification], read_ids) -> List[Notification]:
    return [n.model_copy(update={"read": n.id in read_ids}) for n in notifications]


def sort_newest_first(notifications: List[Notification]) -> List[Notification]:
    # sorted() is stable with reverse=True, so equal timestamps keep source order
    return sorted(notifications, key=lambda n: n.occurred_at, reverse=True)


class NotificationAggregator:
    """Builds one feed snapshot from every source the role may see."""

    def __init__(self, read_store: ReadStateStore, fetchers: Sequence[SourceFetcher]):
        self.read_store = read_store
        self.fetchers = list(fetchers)

    def applicable_fetchers(self, role: str) -> List[SourceFetcher]:
        return [f for f in self.fetchers if f.applies_to(role)]

    async def aggregate(self, user_id: Optional[str], role: Optional[str], now: Optional[datetime] = None) -> NotificationFeed:
        if not user_id or not role:
            return NotificationFeed.empty()

        now = now or datetime.now(timezone.utc)
        read_ids = await self.read_store.get_read_ids(user_id)

        fetchers = self.applicable_fetchers(role)
        results = await asyncio.gather(*(collect_source(f, role, now) for f in fetchers))

        notifications = sort_newest_first(overlay_read_state(merge_results(results), read_ids))
        feed = NotificationFeed.from_notifications(notifications)

        ignored = [r.source for r in results if r.ignored]
        logger.debug(
            f"Aggregated {len(feed.notifications)} notifications ({feed.unread_count} unread)",
            extra={"data": {
                "sources": [f.name for f in fetchers],
                "ignored_sources": ignored,
            }}
        )
        return feed
