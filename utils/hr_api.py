import httpx
from typing import Any, Optional

from config import config
from constants import FetchLimits
from logging_config import get_logger

logger = get_logger("hr_api")


class HRApiError(Exception):
    """Raised when the HR backend cannot be reached or answers with a non-2xx status."""

    def __init__(self, path: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.status_code = status_code


class HRApiClient:
    """
    Thin async client for the HR backend REST API.
    Forwards the dashboard user's bearer token on every call and returns the decoded JSON body.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=(base_url or config.HR_API_URL).rstrip("/") + "/",
            timeout=timeout if timeout is not None else config.HR_API_TIMEOUT,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]):
        self._token = token

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        try:
            response = await self._client.get(path.lstrip("/"), params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HRApiError(path, f"HTTP {e.response.status_code}", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            raise HRApiError(path, repr(e)) from e

        try:
            return response.json()
        except ValueError as e:
            raise HRApiError(path, "response body is not JSON", status_code=response.status_code) from e

    # ─── Identity ────────────────────────────────────────────────────────────

    async def get_me(self) -> Any:
        return await self._get("/auth/me")

    # ─── Announcements ───────────────────────────────────────────────────────

    async def get_announcements(self, limit: int = FetchLimits.ANNOUNCEMENTS) -> Any:
        return await self._get("/announcements", params={"limit": limit})

    # ─── Chat ────────────────────────────────────────────────────────────────

    async def get_chat_unread_count(self) -> Any:
        return await self._get("/chat/unread")

    async def get_chat_rooms(self) -> Any:
        return await self._get("/chat/rooms")

    # ─── Leaves & Expenses ───────────────────────────────────────────────────

    async def get_leaves(self, limit: int = FetchLimits.LEAVES) -> Any:
        return await self._get("/leaves", params={"limit": limit})

    async def get_expenses(self, limit: int = FetchLimits.EXPENSES) -> Any:
        return await self._get("/expenses", params={"limit": limit})

    async def get_pending_leaves(self, limit: int = FetchLimits.PENDING_LEAVES) -> Any:
        return await self._get("/hr/leaves/pending", params={"limit": limit})

    # ─── Attendance ──────────────────────────────────────────────────────────

    async def get_my_edit_requests(self) -> Any:
        return await self._get("/attendance/edit-requests")

    async def get_pending_edit_requests(self) -> Any:
        return await self._get("/attendance/edit-requests/pending")
