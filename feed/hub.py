import time
from typing import Callable, Dict, Optional

from config import config
from feed.aggregator import NotificationAggregator
from feed.fetchers import build_fetchers
from feed.poller import FeedPoller
from feed.read_state import ReadStateStore, build_read_state_store
from feed.session import NotificationSession
from logging_config import get_logger
from models.notification import Identity
from utils.hr_api import HRApiClient

logger = get_logger("hub")


def default_api_factory(token: Optional[str]) -> HRApiClient:
    return HRApiClient(token=token)


class NotificationHub:
    """One NotificationSession per user id, created on first request and evicted when idle."""

    def __init__(
        self,
        api_factory: Callable[[Optional[str]], object] = default_api_factory,
        read_store: Optional[ReadStateStore] = None,
        poll_interval: Optional[float] = None,
        idle_timeout: Optional[float] = None,
    ):
        self._sessions: Dict[str, NotificationSession] = {}
        self.configure(api_factory, read_store, poll_interval, idle_timeout)

    def configure(
        self,
        api_factory: Optional[Callable[[Optional[str]], object]] = None,
        read_store: Optional[ReadStateStore] = None,
        poll_interval: Optional[float] = None,
        idle_timeout: Optional[float] = None,
    ):
        if api_factory is not None:
            self.api_factory = api_factory
        self._read_store = read_store
        self.poll_interval = poll_interval if poll_interval is not None else config.NOTIFICATION_POLL_INTERVAL
        self.idle_timeout = idle_timeout if idle_timeout is not None else config.SESSION_IDLE_TIMEOUT

    @property
    def read_store(self) -> ReadStateStore:
        if self._read_store is None:
            self._read_store = build_read_state_store()
        return self._read_store

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: str) -> Optional[NotificationSession]:
        return self._sessions.get(user_id)

    def _new_session(self, token: Optional[str]) -> NotificationSession:
        api = self.api_factory(token)
        return NotificationSession(
            aggregator=NotificationAggregator(self.read_store, build_fetchers(api)),
            read_store=self.read_store,
            poller=FeedPoller(self.poll_interval),
            api=api,
        )

    async def session_for(self, identity: Identity, token: Optional[str] = None) -> NotificationSession:
        """Return the user's session, bound to ``identity`` and using ``token`` upstream."""
        await self.evict_idle()

        session = self._sessions.get(identity.user_id)
        if session is None:
            session = self._new_session(token)
            self._sessions[identity.user_id] = session
            logger.info(f"Session opened", extra={"data": {"user_id": identity.user_id, "sessions": len(self._sessions)}})
        elif session.api is not None:
            session.api.set_token(token)

        session.set_identity(identity.user_id, identity.role)
        session.touch()
        return session

    async def close_session(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Session closed", extra={"data": {"user_id": user_id, "sessions": len(self._sessions)}})
        return True

    async def evict_idle(self):
        cutoff = time.monotonic() - self.idle_timeout
        stale = [user_id for user_id, s in self._sessions.items() if s.last_seen < cutoff]
        for user_id in stale:
            logger.info(f"Evicting idle session", extra={"data": {"user_id": user_id}})
            await self.close_session(user_id)

    async def shutdown(self):
        for user_id in list(self._sessions):
            await self.close_session(user_id)


notification_hub = NotificationHub()
