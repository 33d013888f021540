from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from pathlib import PurePosixPath
import stat
from typing import Any, AsyncIterator, Iterator

import asyncssh

from core.profiles.models import SftpConfig
from core.remote.client_base import PathProbe, RemoteEntry, RemoteReader, RemoteWriter
from core.remote.errors import NotFoundError, TransferError


class SFTPSession:
    # asyncssh multiplexes SFTP requests over a single channel.
    supports_concurrent_calls = True

    def __init__(self, connection: asyncssh.SSHClientConnection, sftp: asyncssh.SFTPClient) -> None:
        self._connection = connection
        self._sftp = sftp

    @property
    def server_version(self) -> str:
        return str(self._connection.get_extra_info("server_version", ""))

    @property
    def protocol_version(self) -> int:
        return int(self._sftp.version)

    def is_connected(self) -> bool:
        return not self._connection.is_closed()

    async def probe(self, remote_path: str) -> PathProbe:
        try:
            attrs = await self._sftp.stat(remote_path)
        except asyncssh.SFTPNoSuchFile:
            return PathProbe.missing()
        except (asyncssh.Error, OSError) as error:
            return PathProbe.failed(str(error))

        return PathProbe.found(is_directory=_is_directory(attrs.permissions))

    async def make_directory(self, remote_path: str) -> None:
        with _translate_errors(remote_path):
            await self._sftp.mkdir(remote_path)

    async def list_entries(self, remote_path: str) -> list[RemoteEntry]:
        entries: list[RemoteEntry] = []
        with _translate_errors(remote_path):
            async for item in self._sftp.scandir(remote_path):
                attrs = item.attrs
                name = str(item.filename)
                entries.append(
                    RemoteEntry(
                        name=name,
                        path=str(PurePosixPath(remote_path) / name),
                        is_directory=_is_directory(attrs.permissions),
                        size_bytes=int(attrs.size) if attrs.size is not None else 0,
                        modified_at=datetime.fromtimestamp(attrs.mtime) if attrs.mtime is not None else None,
                    )
                )
        return entries

    @asynccontextmanager
    async def open_read(self, remote_path: str) -> AsyncIterator[RemoteReader]:
        with _translate_errors(remote_path):
            async with self._sftp.open(remote_path, "rb") as remote_file:
                yield remote_file

    @asynccontextmanager
    async def open_write(self, remote_path: str) -> AsyncIterator[RemoteWriter]:
        with _translate_errors(remote_path):
            async with self._sftp.open(remote_path, "wb") as remote_file:
                yield remote_file

    async def remove(self, remote_path: str) -> None:
        with _translate_errors(remote_path):
            await self._sftp.remove(remote_path)

    async def rename(self, source_path: str, target_path: str) -> None:
        with _translate_errors(source_path):
            await self._sftp.rename(source_path, target_path)

    async def working_directory(self) -> str:
        with _translate_errors("."):
            return str(await self._sftp.realpath("."))

    async def close(self) -> None:
        self._sftp.exit()
        self._connection.close()
        await self._connection.wait_closed()


def build_connect_options(config: SftpConfig) -> dict[str, Any]:
    options: dict[str, Any] = {
        "host": config.host,
        "port": config.port,
        "username": config.username,
        "connect_timeout": config.connect_timeout_seconds,
        "login_timeout": config.connect_timeout_seconds,
    }

    if config.uses_private_key:
        options["client_keys"] = [config.private_key_path]
        if config.private_key_passphrase:
            options["passphrase"] = config.private_key_passphrase
    else:
        options["password"] = config.password
        options["client_keys"] = None

    if not config.verify_host_key:
        options["known_hosts"] = None
    elif config.known_hosts_path:
        options["known_hosts"] = config.known_hosts_path

    return options


async def open_sftp_session(config: SftpConfig) -> SFTPSession:
    connection = await asyncssh.connect(**build_connect_options(config))
    try:
        sftp = await asyncio.wait_for(connection.start_sftp_client(), timeout=config.connect_timeout_seconds)
    except BaseException:
        connection.close()
        raise
    return SFTPSession(connection, sftp)


def _is_directory(permissions: int | None) -> bool:
    return bool(permissions is not None and stat.S_ISDIR(permissions))


@contextmanager
def _translate_errors(remote_path: str) -> Iterator[None]:
    try:
        yield
    except asyncssh.SFTPNoSuchFile as error:
        raise NotFoundError(f"{remote_path}: {error.reason}") from error
    except asyncssh.SFTPError as error:
        raise TransferError(f"{remote_path}: {error.reason}") from error
