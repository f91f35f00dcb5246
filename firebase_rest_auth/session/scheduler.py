"""
Autonomous token refresh scheduling.

The scheduler owns one timer per account. When armed it fires
``margin`` seconds before the token expires, or halfway through the
remaining lifetime when that is shorter than twice the margin, and
runs the account's refresh as an independent task. A failed background
refresh stops the scheduler for good (until re-armed explicitly) and is
reported through the failure callback instead of being raised into
unrelated code.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    """States of the refresh scheduler."""

    IDLE = "idle"  # no timer
    ARMED = "armed"  # timer pending
    REFRESHING = "refreshing"  # scheduled refresh in flight
    STOPPED = "stopped"  # last scheduled refresh failed
    DISPOSED = "disposed"  # terminal


class RefreshScheduler:
    """Timer driving the autonomous refresh of one account.

    Args:
        refresh: Coroutine function performing the refresh. It is expected
            to call ``arm()`` again with the new expiry on success.
        margin: Seconds before expiry at which the refresh fires
        on_failure: Called with the exception when a scheduled refresh fails
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        margin: float,
        on_failure: Callable[[Exception], None] | None = None,
    ) -> None:
        self._refresh = refresh
        self.margin = margin
        self.on_failure = on_failure

        self._state = RefreshState.IDLE
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._fire_at: datetime | None = None
        self.last_error: Exception | None = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def fire_at(self) -> datetime | None:
        """When the pending timer fires, if armed."""
        return self._fire_at if self._state == RefreshState.ARMED else None

    @property
    def is_disposed(self) -> bool:
        return self._state == RefreshState.DISPOSED

    def delay_until_refresh(self, expires_at: datetime, now: datetime | None = None) -> float:
        """Seconds to wait before refreshing a token expiring at ``expires_at``."""
        now = now or datetime.now(UTC)
        remaining = (expires_at - now).total_seconds()
        # never more than half the remaining lifetime
        margin = min(self.margin, remaining / 2)
        return max(remaining - margin, 0.0)

    def arm(self, expires_at: datetime) -> None:
        """Schedule the next refresh for a token expiring at ``expires_at``.

        Replaces any pending timer. Must be called from a running event loop.
        No-op once disposed.
        """
        if self._state == RefreshState.DISPOSED:
            return

        self._cancel_timer()
        loop = asyncio.get_running_loop()
        delay = self.delay_until_refresh(expires_at)
        self._fire_at = datetime.now(UTC) + timedelta(seconds=delay)
        self._handle = loop.call_later(delay, self._fire)
        self._state = RefreshState.ARMED
        self.last_error = None
        logger.debug(f"Token refresh scheduled in {delay:.1f}s")

    def cancel(self) -> None:
        """Cancel the pending timer and go idle. An in-flight refresh is not interrupted."""
        if self._state == RefreshState.DISPOSED:
            return
        self._cancel_timer()
        self._state = RefreshState.IDLE

    def dispose(self) -> None:
        """Cancel the timer for good. Idempotent."""
        if self._state == RefreshState.DISPOSED:
            return
        self._cancel_timer()
        self._state = RefreshState.DISPOSED
        logger.debug("Refresh scheduler disposed")

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._fire_at = None

    def _fire(self) -> None:
        self._handle = None
        if self._state != RefreshState.ARMED:
            return
        self._state = RefreshState.REFRESHING
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            await self._refresh()
        except Exception as e:
            # Disposed, cancelled or re-armed from newer credentials meanwhile
            if self._state != RefreshState.REFRESHING:
                logger.debug(f"Ignoring stale refresh failure in state {self._state.value}: {e}")
                return
            self._state = RefreshState.STOPPED
            self.last_error = e
            logger.warning(f"Automatic token refresh failed, auto refresh stopped: {e}")
            if self.on_failure:
                self.on_failure(e)
        else:
            # success re-arms through arm()
            if self._state == RefreshState.REFRESHING:
                self._state = RefreshState.IDLE
        finally:
            self._task = None
