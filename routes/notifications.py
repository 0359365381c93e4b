from fastapi import APIRouter, Depends
from feed.hub import notification_hub
from feed.session import NotificationSession
from models.notification import FeedFilter, FeedStats, Identity, filter_notifications
from routes.deps import get_current_identity, get_session
from logging_config import get_logger

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
logger = get_logger("notifications")


def serialize_feed(session: NotificationSession, feed_filter: str = "all") -> dict:
    feed = session.feed
    return {
        "notifications": [n.model_dump(mode="json") for n in filter_notifications(feed, feed_filter)],
        "unread_count": feed.unread_count,
        "loading": session.loading,
    }


@router.get("")
async def get_notifications(
    filter: FeedFilter = "all",
    wait: bool = True,
    session: NotificationSession = Depends(get_session),
):
    """Get the aggregated feed for the current user, optionally narrowed to unread or one category."""
    if wait:
        await session.ready()
    return serialize_feed(session, filter)


@router.get("/unread-count")
async def get_unread_count(session: NotificationSession = Depends(get_session)):
    """Get count of unread notifications."""
    await session.ready()
    return {"count": session.unread_count}


@router.get("/stats", response_model=FeedStats)
async def get_stats(session: NotificationSession = Depends(get_session)):
    """Totals shown above the notification list."""
    await session.ready()
    return FeedStats.from_feed(session.feed)


@router.patch("/{notification_id}/read")
async def mark_as_read(notification_id: str, session: NotificationSession = Depends(get_session)):
    """Mark a notification as read. Ids not in the current feed are still remembered."""
    await session.ready()
    feed = await session.mark_as_read(notification_id)
    return {"message": "Marked as read", "unread_count": feed.unread_count}


@router.post("/mark-all-read")
async def mark_all_read(session: NotificationSession = Depends(get_session)):
    """Mark every notification currently in the feed as read."""
    await session.ready()
    marked = await session.mark_all_read()
    logger.info(f"Marked {marked} notifications as read")
    return {"message": "All notifications marked as read", "marked": marked, "unread_count": session.unread_count}


@router.post("/refresh")
async def refresh(session: NotificationSession = Depends(get_session)):
    """Run one aggregation pass now and return the resulting feed."""
    await session.refresh()
    return serialize_feed(session)


@router.delete("/session")
async def end_session(identity: Identity = Depends(get_current_identity)):
    """Stop polling for the current user (logout)."""
    closed = await notification_hub.close_session(identity.user_id)
    return {"message": "Session closed" if closed else "No active session"}
