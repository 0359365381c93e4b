import asyncio
import time
from typing import List, Optional, Set

from feed.aggregator import NotificationAggregator
from feed.poller import FeedPoller
from feed.read_state import ReadStateStore
from logging_config import get_logger, user_id_var, role_var
from models.notification import Identity, Notification, NotificationFeed

logger = get_logger("session")


class NotificationSession:
    """
    The feed as one logged-in consumer sees it: the current snapshot, a loading
    flag and the three mutations (mark one read, mark all read, refresh).

    Every identity change bumps ``generation``; a pass publishes only if the
    generation it started under is still current.
    """

    def __init__(
        self,
        aggregator: NotificationAggregator,
        read_store: ReadStateStore,
        poller: FeedPoller,
        api=None,
    ):
        self.aggregator = aggregator
        self.read_store = read_store
        self.poller = poller
        self.api = api

        self.generation = 0
        self.last_seen = time.monotonic()
        self._identity = Identity()
        self._feed = NotificationFeed.empty()
        self._foreground_passes = 0
        # Ids acknowledged under the current identity; re-applied to passes that
        # loaded read state before the acknowledgement was persisted.
        self._acknowledged: Set[str] = set()

    # ─── Consumer view ───────────────────────────────────────────────────────

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def feed(self) -> NotificationFeed:
        return self._feed

    @property
    def notifications(self) -> List[Notification]:
        return self._feed.notifications

    @property
    def unread_count(self) -> int:
        return self._feed.unread_count

    @property
    def loading(self) -> bool:
        return self._foreground_passes > 0

    def touch(self):
        self.last_seen = time.monotonic()

    # ─── Lifecycle ───────────────────────────────────────────────────────────

    def set_identity(self, user_id: Optional[str], role: Optional[str]) -> Optional[asyncio.Task]:
        """
        Move to the given identity. A complete identity starts (or restarts) polling;
        an incomplete one stops it. Re-asserting the current identity is a no-op.
        """
        identity = Identity(user_id=user_id or None, role=role or None)
        if identity == self._identity and (self.poller.state == FeedPoller.POLLING or not identity.is_complete):
            return self.poller.initial_pass

        self.generation += 1
        self._identity = identity
        self._feed = NotificationFeed.empty()
        self._foreground_passes = 0
        self._acknowledged = set()

        if not identity.is_complete:
            self.poller.stop()
            logger.info("Session idle", extra={"data": {"generation": self.generation}})
            return None

        generation = self.generation
        logger.info(
            "Session polling",
            extra={"data": {"user_id": identity.user_id, "role": identity.role, "generation": generation}}
        )

        async def run(foreground: bool):
            await self._run_pass(identity, generation, foreground)

        return self.poller.start(run)

    def stop(self):
        self.set_identity(None, None)

    async def close(self):
        self.stop()
        await self.poller.drain()
        if self.api is not None:
            await self.api.close()

    async def _run_pass(self, identity: Identity, generation: int, foreground: bool):
        user_id_var.set(identity.user_id)
        role_var.set(identity.role)
        if foreground:
            self._foreground_passes += 1
        try:
            feed = await self.aggregator.aggregate(identity.user_id, identity.role)
        finally:
            if foreground and generation == self.generation:
                self._foreground_passes -= 1

        if generation != self.generation:
            logger.debug(
                "Discarding pass for superseded identity",
                extra={"data": {"pass_generation": generation, "current_generation": self.generation}}
            )
            return

        if self._acknowledged:
            feed = feed.with_read(self._acknowledged)
        self._feed = feed

    async def ready(self) -> NotificationFeed:
        """Wait for the initial pass of the current identity, if it is still running."""
        task = self.poller.initial_pass
        if task is not None and not task.done():
            await asyncio.shield(task)
        return self._feed

    # ─── Mutations ───────────────────────────────────────────────────────────

    async def mark_as_read(self, notification_id: str) -> NotificationFeed:
        user_id = self._identity.user_id
        if not user_id:
            return self._feed
        self._acknowledged.add(notification_id)
        self._feed = self._feed.with_read([notification_id])
        await self.read_store.add_read_ids(user_id, [notification_id])
        return self._feed

    async def mark_all_read(self) -> int:
        """Acknowledge every item currently in the feed. Returns how many ids were acknowledged."""
        user_id = self._identity.user_id
        if not user_id:
            return 0
        ids = self._feed.ids
        self._acknowledged.update(ids)
        self._feed = self._feed.with_read(ids)
        await self.read_store.add_read_ids(user_id, ids)
        return len(ids)

    async def refresh(self) -> NotificationFeed:
        task = self.poller.refresh()
        if task is not None:
            await asyncio.shield(task)
        return self._feed
