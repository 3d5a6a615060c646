"""Session lifecycle for the Eight Sleep API.

A session is loaded from the disk cache when possible and otherwise
obtained by logging in. It is checked against an expiry safety margin
before reuse, so requests rarely race an expiring token.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from . import api
from .const import SESSION_EXPIRY_MARGIN
from .models import Session

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import timedelta

    import httpx

    from .models import RequestContext
    from .storage import DiskCache

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionManager:
    """Owns login, cache-backed reuse and reauthentication of the session."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        cache: DiskCache,
        email: str | None,
        password: str | None,
        *,
        margin: timedelta = SESSION_EXPIRY_MARGIN,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the session manager.

        Args:
            session: HTTP client session.
            cache: Disk cache holding the last session.
            email: Account email address.
            password: Account password.
            margin: How long before expiry a session stops being reused.
            now: Clock returning an aware datetime.

        Raises:
            EightSleepConfigError: If email or password is missing.

        """
        if not email or not password:
            error_msg = "Eight Sleep email and password must be configured"
            raise api.EightSleepConfigError(error_msg)

        self._session = session
        self._cache = cache
        self._email = email
        self._password = password
        self._margin = margin
        self._now = now
        self._active: Session | None = None
        self._pending: asyncio.Task[Session] | None = None

    @property
    def active_session(self) -> Session | None:
        """Return the session currently held, if any."""
        return self._active

    def is_valid(self, session: Session | None) -> bool:
        """Return True if the session can be reused."""
        return session is not None and session.is_valid(self._now(), self._margin)

    async def async_obtain_session(self) -> Session:
        """Return a valid session, logging in if needed.

        Concurrent callers share a single in-flight attempt.

        Raises:
            EightSleepApiAuthError: If the credentials are rejected.
            EightSleepApiClientError: If the login request fails.

        """
        if self.is_valid(self._active):
            return self._active

        if self._pending is None or self._pending.done():
            self._pending = asyncio.create_task(self._async_prepare_session())

        pending = self._pending
        try:
            self._active = await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None
        return self._active

    async def async_request_context(self) -> RequestContext:
        """Return credentials for the next authenticated call."""
        session = await self.async_obtain_session()
        return session.request_context

    async def async_validate_active_session(self) -> Session:
        """Reauthenticate proactively if the held session is about to expire."""
        _LOGGER.debug("Validating Eight Sleep session")
        if self._active is not None and not self.is_valid(self._active):
            _LOGGER.debug("Reauthenticating expired session")
            await self.async_invalidate()
        session = await self.async_obtain_session()
        _LOGGER.debug("Session validated")
        return session

    async def async_invalidate(self) -> None:
        """Drop the held session and its cache entry."""
        self._active = None
        await self._cache.async_erase()

    async def _async_prepare_session(self) -> Session:
        cached = await self._async_load_cached_session()
        if self.is_valid(cached):
            _LOGGER.debug("Using cached session for user %s", cached.user_id)
            return cached

        await self._cache.async_erase()
        return await self._async_login()

    async def _async_load_cached_session(self) -> Session | None:
        data = await self._cache.async_read()
        if data is None:
            return None

        session = Session.from_dict(data)
        if session is None:
            _LOGGER.debug("Cached session is malformed, ignoring it")
        return session

    async def _async_login(self) -> Session:
        _LOGGER.info("Logging in to Eight Sleep as %s", self._email)
        session = await api.async_login(self._session, self._email, self._password)
        if not self.is_valid(session):
            error_msg = (
                "Login returned a session expiring at "
                f"{session.expiration_date.isoformat()}"
            )
            raise api.EightSleepApiClientError(error_msg)

        await self._cache.async_write(session.as_dict())
        return session
