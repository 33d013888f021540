from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from core.profiles.models import SftpConfig
from core.remote.client_base import RemoteSession
from core.remote.errors import SftpConnectionError
from core.remote.sftp_client import open_sftp_session

MAX_CONNECT_ATTEMPTS = 3

Connector = Callable[[SftpConfig], Awaitable[RemoteSession]]
Sleeper = Callable[[float], Awaitable[None]]


class ConnectionFactory:
    """Opens authenticated SFTP sessions, retrying with exponential backoff.

    Attempts that fail before the last one are logged and followed by a
    ``2 ** attempt`` second pause; the last failure is raised as
    :class:`SftpConnectionError`.
    """

    def __init__(
        self,
        config: SftpConfig,
        logger: logging.Logger | None = None,
        connector: Connector | None = None,
        sleep: Sleeper | None = None,
        max_attempts: int = MAX_CONNECT_ATTEMPTS,
    ) -> None:
        self._config = config
        self._logger = logger or logging.getLogger("sftpgate.connection")
        self._connector = connector or open_sftp_session
        self._sleep = sleep or asyncio.sleep
        self._max_attempts = max_attempts

    @property
    def config(self) -> SftpConfig:
        return self._config

    async def connect(self) -> RemoteSession:
        last_error: Exception | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                session = await self._connector(self._config)
            except Exception as error:
                last_error = error
                if attempt >= self._max_attempts:
                    break

                delay = 2**attempt
                self._logger.warning(
                    "Failed to connect to SFTP server %s:%s (attempt %s/%s): %s; retrying in %ss",
                    self._config.host,
                    self._config.port,
                    attempt,
                    self._max_attempts,
                    error,
                    delay,
                )
                await self._sleep(delay)
                continue

            self._logger.info(
                "SFTP connection established to %s:%s (attempt %s)",
                self._config.host,
                self._config.port,
                attempt,
            )
            return session

        self._logger.error(
            "Giving up on SFTP server %s:%s after %s attempts",
            self._config.host,
            self._config.port,
            self._max_attempts,
        )
        raise SftpConnectionError(
            f"Failed to connect to SFTP server after {self._max_attempts} attempts: {last_error}",
            attempts=self._max_attempts,
        ) from last_error
