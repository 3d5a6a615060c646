"""Activity-gated polling of a remote resource.

An AdaptivePollingCache holds the last known value of a remote resource.
While consumers keep asking for it, the value is refreshed on a fixed
period. Once nobody has asked for longer than the idle timeout, the refresh
task is cancelled and the last value is served until the next request.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING, Generic, TypeVar

from .const import IDLE_TIMEOUT, REFRESH_INTERVAL
from .models import PollingState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class AdaptivePollingCache(Generic[_T]):
    """Holds a polled value and refreshes it only while it is in use.

    States:
        IDLE: no refresh task; ``peek`` serves the last value.
        POLLING: a refresh task fetches every ``refresh_interval`` seconds
            until ``idle_timeout`` seconds pass without activity.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[_T]],
        *,
        refresh_interval: float = REFRESH_INTERVAL,
        idle_timeout: float = IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the cache.

        Args:
            name: Name used in log messages.
            fetch: Coroutine function returning a fresh value.
            refresh_interval: Seconds between refreshes while polling.
            idle_timeout: Seconds of inactivity before polling stops.
            clock: Monotonic clock, injectable for tests.
            sleep: Sleep coroutine driving the refresh task.

        """
        if refresh_interval >= idle_timeout:
            error_msg = "refresh_interval must be shorter than idle_timeout"
            raise ValueError(error_msg)

        self.name = name
        self._fetch = fetch
        self._refresh_interval = refresh_interval
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._sleep = sleep

        self._value: _T | None = None
        self._state = PollingState.IDLE
        self._last_active = clock()
        self._refresh_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[bool] | None = None
        # Bumped by local writes; fetches started before a write are dropped
        self._write_seq = 0
        self._listeners: list[Callable[[], None]] = []

    @property
    def state(self) -> PollingState:
        return self._state

    @property
    def last_active(self) -> float:
        return self._last_active

    def peek(self) -> _T | None:
        """Return the held value without marking activity or fetching."""
        return self._value

    async def async_get_active(self) -> _T | None:
        """Mark the resource as in use and return its current value.

        From IDLE this fetches immediately and starts the refresh task. If a
        fetch is already in flight, its result is awaited.
        """
        self._mark_active()

        if self._state is PollingState.IDLE:
            self._start_polling()
            await self.async_refresh()
        elif self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)

        return self._value

    async def async_refresh(self) -> bool:
        """Fetch a fresh value, sharing any fetch already in flight.

        Returns:
            True if the held value was replaced.

        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._async_fetch())
        return await asyncio.shield(self._inflight)

    async def async_tick(self) -> bool:
        """Run one timer tick: refresh, then go idle if nobody is active.

        Returns:
            True while polling should continue.

        """
        await self.async_refresh()

        inactive_for = self._clock() - self._last_active
        if inactive_for > self._idle_timeout:
            _LOGGER.debug(
                "No activity on %s for %.0fs, entering standby",
                self.name,
                inactive_for,
            )
            self._enter_idle()
            return False
        return True

    def set_value(self, value: _T) -> None:
        """Replace the held value with a server-acknowledged local write."""
        self._write_seq += 1
        self._value = value
        self._mark_active()
        if self._state is PollingState.IDLE:
            self._start_polling()
        self._notify_listeners()

    def async_add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Listen for value changes.

        Returns:
            A function to remove the listener.

        """
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    async def async_stop(self) -> None:
        """Cancel background work and go idle."""
        refresh_task = self._refresh_task
        inflight = self._inflight
        self._enter_idle()

        for task in (refresh_task, inflight):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._inflight = None

    def _mark_active(self) -> None:
        self._last_active = self._clock()

    def _start_polling(self) -> None:
        _LOGGER.debug("Start polling %s", self.name)
        self._state = PollingState.POLLING
        self._refresh_task = asyncio.create_task(self._async_poll())

    def _enter_idle(self) -> None:
        self._state = PollingState.IDLE
        task, self._refresh_task = self._refresh_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _async_poll(self) -> None:
        try:
            while self._state is PollingState.POLLING:
                await self._sleep(self._refresh_interval)
                if not await self.async_tick():
                    return
        except Exception:
            _LOGGER.exception("Polling of %s stopped unexpectedly", self.name)
        finally:
            # Any exit of the owning task leaves the cache restartable
            if self._refresh_task is asyncio.current_task():
                self._enter_idle()

    async def _async_fetch(self) -> bool:
        write_seq = self._write_seq
        try:
            value = await self._fetch()
        except Exception:
            _LOGGER.exception("Error refreshing %s, keeping last value", self.name)
            return False

        if write_seq != self._write_seq:
            _LOGGER.debug("Dropping %s refresh that started before a local write", self.name)
            return False

        self._value = value
        self._notify_listeners()
        return True

    def _notify_listeners(self) -> None:
        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception:
                _LOGGER.exception("Error in %s listener", self.name)
