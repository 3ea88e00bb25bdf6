import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .session import SessionInfo, SessionRegistry

logger = logging.getLogger(__name__)

ExpiredCallback = Callable[[List[SessionInfo]], Awaitable[None]]


class SessionReaper:
    def __init__(
        self,
        registry: SessionRegistry,
        sweep_interval: float = 300,
        max_age: float = 3600,
        on_expired: Optional[ExpiredCallback] = None,
    ):
        """
        Initialize the reaper.

        Args:
            registry: Registry to sweep
            sweep_interval: Seconds between sweeps (5 minutes)
            max_age: Sessions at least this old are evicted (1 hour)
            on_expired: Optional coroutine called with the evicted sessions
        """
        self.registry = registry
        self.sweep_interval = sweep_interval
        self.max_age = max_age
        self.on_expired = on_expired
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, now: Optional[float] = None) -> List[str]:
        """
        Run a single sweep.

        Returns:
            Pins of the evicted sessions
        """
        expired = await self.registry.evict_expired(self.max_age, now)
        for info in expired:
            logger.info(f"Cleaned up expired session: {info.pin}")

        if expired and self.on_expired:
            await self.on_expired(expired)

        return [info.pin for info in expired]

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Session sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(
            f"Session reaper started (interval={self.sweep_interval}s, max_age={self.max_age}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session reaper stopped")
