import asyncio
from typing import Awaitable, Callable, Optional, Set

from logging_config import get_logger

logger = get_logger("poller")

# Called with foreground=True for passes the user is waiting on (start, refresh)
PassRunner = Callable[[bool], Awaitable[None]]


class FeedPoller:
    """
    Drives aggregation passes for one session.

    Idle: no runner, nothing scheduled.
    Polling: one immediate pass on start, then one pass every ``interval`` seconds.

    Stopping cancels the schedule only. Passes already running are left to finish;
    the session discards their results if the identity has moved on.
    """

    IDLE = "idle"
    POLLING = "polling"

    def __init__(self, interval: float):
        self.interval = interval
        self._runner: Optional[PassRunner] = None
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._initial: Optional[asyncio.Task] = None

    @property
    def state(self) -> str:
        return self.POLLING if self._runner is not None else self.IDLE

    @property
    def initial_pass(self) -> Optional[asyncio.Task]:
        return self._initial

    def start(self, runner: PassRunner) -> asyncio.Task:
        """Enter Polling with ``runner``, replacing any previous schedule. Returns the initial pass."""
        self.stop()
        self._runner = runner
        self._initial = self._spawn(runner, foreground=True)
        self._timer = asyncio.create_task(self._tick(runner))
        return self._initial

    def stop(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._runner is not None:
            logger.debug("Polling stopped")
        self._runner = None
        self._initial = None

    def refresh(self) -> Optional[asyncio.Task]:
        """Run one out-of-band pass without touching the schedule. No-op while Idle."""
        if self._runner is None:
            return None
        return self._spawn(self._runner, foreground=True)

    async def drain(self):
        """Wait for every pass currently in flight."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def _spawn(self, runner: PassRunner, foreground: bool) -> asyncio.Task:
        task = asyncio.create_task(self._run(runner, foreground))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _run(self, runner: PassRunner, foreground: bool):
        try:
            await runner(foreground)
        except Exception as e:
            # Passes are built never to fail; keep the schedule alive if one does.
            logger.error(f"Aggregation pass crashed: {e}", exc_info=True)

    async def _tick(self, runner: PassRunner):
        while True:
            await asyncio.sleep(self.interval)
            self._spawn(runner, foreground=False)
