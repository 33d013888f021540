from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from core.remote.client_base import RemoteSession
from core.remote.connection_factory import ConnectionFactory
from core.remote.errors import SessionManagerClosedError

DEFAULT_MAX_POOL_SIZE = 5


class _SessionManagerBase:
    def __init__(self, factory: ConnectionFactory, logger: logging.Logger | None = None) -> None:
        self._factory = factory
        self._logger = logger or logging.getLogger("sftpgate.sessions")
        self._open = False
        self._shut_down = False
        self._outstanding = 0

    @property
    def closed(self) -> bool:
        return not self._open

    @property
    def outstanding(self) -> int:
        return self._outstanding

    async def open(self) -> None:
        if self._shut_down:
            raise SessionManagerClosedError("session manager cannot be reopened after shutdown")
        self._open = True

    async def shutdown(self) -> None:
        self._open = False
        self._shut_down = True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RemoteSession]:
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)

    async def acquire(self) -> RemoteSession:
        raise NotImplementedError

    async def release(self, session: RemoteSession | None) -> None:
        raise NotImplementedError

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, traceback) -> None:
        await self.shutdown()

    def _ensure_open(self) -> None:
        if not self._open:
            raise SessionManagerClosedError()

    def _begin_release(self) -> None:
        if self._outstanding <= 0:
            raise RuntimeError("release() called without a matching acquire()")
        self._outstanding -= 1

    async def _discard(self, session: RemoteSession) -> None:
        try:
            await session.close()
        except Exception as error:
            self._logger.warning("Error closing SFTP session: %s", error)


class SingleSessionManager(_SessionManagerBase):
    """Shares one session between all callers.

    The whole check-or-reconnect step runs under one lock, so callers queue
    up while a reconnect is in progress. The handle is shared, not checked
    out, unless the transport says it cannot take concurrent calls; then
    every acquisition holds the handle exclusively until it is released.

    The checkout lock is always taken before the connect lock and never
    awaited while the connect lock is held.
    """

    def __init__(self, factory: ConnectionFactory, logger: logging.Logger | None = None) -> None:
        super().__init__(factory, logger)
        self._lock = asyncio.Lock()
        self._checkout_lock = asyncio.Lock()
        self._session: RemoteSession | None = None
        self._checkout_holder: RemoteSession | None = None
        self._exclusive = False

    @property
    def exclusive(self) -> bool:
        return self._exclusive

    async def acquire(self) -> RemoteSession:
        self._ensure_open()

        while True:
            holds_checkout = self._exclusive
            if holds_checkout:
                await self._checkout_lock.acquire()

            try:
                async with self._lock:
                    self._ensure_open()
                    session = await self._connected_session()
            except BaseException:
                if holds_checkout:
                    self._checkout_lock.release()
                raise

            if session.supports_concurrent_calls:
                if holds_checkout:
                    self._checkout_lock.release()
                self._exclusive = False
                self._outstanding += 1
                return session

            if holds_checkout:
                self._checkout_holder = session
                self._outstanding += 1
                return session

            # Seen without the checkout lock: switch modes and queue for it.
            if not self._exclusive:
                self._logger.info("SFTP transport does not support concurrent calls; using exclusive checkout")
                self._exclusive = True

    async def release(self, session: RemoteSession | None) -> None:
        self._begin_release()
        if session is not None and session is self._checkout_holder:
            self._checkout_holder = None
            self._checkout_lock.release()

    async def shutdown(self) -> None:
        await super().shutdown()
        async with self._lock:
            if self._session is not None:
                await self._discard(self._session)
                self._session = None
        self._logger.info("Shared SFTP session closed")

    async def _connected_session(self) -> RemoteSession:
        if self._session is not None and self._session.is_connected():
            return self._session

        if self._session is not None:
            self._logger.info("Shared SFTP session is disconnected; reconnecting")
            stale = self._session
            self._session = None
            await self._discard(stale)

        self._session = await self._factory.connect()
        return self._session


class PooledSessionManager(_SessionManagerBase):
    """Hands out up to ``max_pool_size`` sessions, one caller per session.

    A bounded semaphore caps the number of sessions checked out at once;
    callers beyond the cap wait for a release. Healthy sessions go back to
    the idle queue on release, dead ones are closed.
    """

    def __init__(
        self,
        factory: ConnectionFactory,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_pool_size < 1:
            raise ValueError("max_pool_size must be at least 1")
        super().__init__(factory, logger)
        self._max_pool_size = max_pool_size
        self._slots = asyncio.BoundedSemaphore(max_pool_size)
        self._idle: deque[RemoteSession] = deque()

    @property
    def exclusive(self) -> bool:
        return True

    @property
    def max_pool_size(self) -> int:
        return self._max_pool_size

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    async def acquire(self) -> RemoteSession:
        self._ensure_open()
        await self._slots.acquire()

        try:
            self._ensure_open()
            session = await self._take_idle()
            if session is None:
                session = await self._factory.connect()
        except BaseException:
            self._slots.release()
            raise

        self._outstanding += 1
        return session

    async def release(self, session: RemoteSession | None) -> None:
        self._begin_release()
        try:
            if session is None:
                return
            if session.is_connected() and not self.closed:
                self._idle.append(session)
            else:
                await self._discard(session)
        finally:
            self._slots.release()

    async def shutdown(self) -> None:
        await super().shutdown()
        drained = 0
        while self._idle:
            await self._discard(self._idle.popleft())
            drained += 1
        self._logger.info("SFTP session pool shut down, closed %s idle session(s)", drained)

    async def _take_idle(self) -> RemoteSession | None:
        while self._idle:
            session = self._idle.popleft()
            if session.is_connected():
                return session
            self._logger.info("Discarding disconnected pooled SFTP session")
            await self._discard(session)
        return None
