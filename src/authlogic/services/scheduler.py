"""Silent token refresh scheduling.

After every successful authentication the scheduler sleeps until shortly
before the access token expires, asks the engine for a refresh, and goes
back to sleep for the new token's lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from authlogic.models.tokens import AuthenticationResult

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[AuthenticationResult]]
ErrorCallback = Callable[[Exception], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


class TokenRefreshScheduler:
    """Runs at most one pending refresh task at a time.

    Failures never propagate out of the background task: they are logged and
    handed to the error callback registered with ``on_error``. The loop stops
    after a failure or once ``limit`` refreshes have been made.
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        margin: float = 30,
        limit: int | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._refresh = refresh
        self.margin = margin
        self.limit = limit
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._error_callback: ErrorCallback | None = None
        self.attempts = 0

    @property
    def running(self) -> bool:
        """True if a refresh is scheduled or in progress."""
        return self._task is not None and not self._task.done()

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a callback for refresh failures."""
        self._error_callback = callback

    def delay_for(self, expires_in: float) -> float:
        return max(expires_in - self.margin, 0)

    def arm(self, expires_in: int | None) -> None:
        """Schedule the next refresh for a freshly obtained token.

        Replaces any pending refresh and resets the attempt counter.
        """
        self.cancel()
        self.attempts = 0

        if expires_in is None:
            logger.debug("Token has no expiry, refresh not scheduled")
            return

        self._task = asyncio.create_task(self._run(expires_in))

    def cancel(self) -> None:
        """Cancel the pending refresh, if any."""
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        self._task = None

    async def aclose(self) -> None:
        """Cancel the pending refresh and wait for it to finish."""
        task = self._task
        self.cancel()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self, expires_in: int) -> None:
        while True:
            delay = self.delay_for(expires_in)
            logger.debug(f"Next token refresh in {delay:.0f}s")
            await self._sleep(delay)

            if self.limit is not None and self.attempts >= self.limit:
                logger.warning(f"Token refresh limit of {self.limit} reached")
                return
            self.attempts += 1

            try:
                authentication = await self._refresh()
            except Exception as e:
                logger.error(f"Token refresh failed: {e}")
                await self._report(e)
                return

            if authentication.expires_in is None:
                logger.debug("Refreshed token has no expiry, stopping refresh")
                return
            expires_in = authentication.expires_in

    async def _report(self, error: Exception) -> None:
        if self._error_callback is None:
            return
        try:
            await self._error_callback(error)
        except Exception as e:
            logger.error(f"Refresh error callback failed: {e}")
