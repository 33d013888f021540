"""
Shared fixtures: an in-memory SFTP transport with call counters and
fault injection, and helpers that wire it into the real session managers.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import PurePosixPath
from typing import AsyncIterator

import pytest

from core.profiles.models import SftpConfig
from core.remote.client_base import PathProbe, RemoteEntry
from core.remote.client_factory import create_session_manager
from core.remote.connection_factory import ConnectionFactory
from core.remote.errors import NotFoundError, TransferError
from core.transfers.file_service import SftpFileService

FIXED_MTIME = datetime(2024, 5, 1, 12, 0, 0)


class FakeRemoteFileSystem:
    def __init__(self) -> None:
        self.directories: set[str] = {"/"}
        self.files: dict[str, bytes] = {}
        self.mkdir_calls: list[str] = []
        self.probe_calls: list[str] = []
        self.failing_writes: set[str] = set()
        # one-shot: a path fails the next probe only
        self.failing_probes: set[str] = set()

    def add_directory(self, path: str) -> None:
        current = ""
        for segment in (part for part in path.split("/") if part):
            current = f"{current}/{segment}"
            self.directories.add(current)

    def add_file(self, path: str, content: bytes) -> None:
        self.add_directory(str(PurePosixPath(path).parent))
        self.files[path] = content


class FakeReader:
    def __init__(self, content: bytes) -> None:
        self._content = content
        self._position = 0

    async def read(self, size: int) -> bytes:
        await asyncio.sleep(0)
        chunk = self._content[self._position : self._position + size]
        self._position += len(chunk)
        return chunk


class FakeWriter:
    def __init__(self, fs: FakeRemoteFileSystem, path: str) -> None:
        self._fs = fs
        self._path = path
        self.buffer = bytearray()

    async def write(self, data: bytes) -> None:
        await asyncio.sleep(0)
        if self._path in self._fs.failing_writes:
            raise TransferError(f"{self._path}: write failed")
        self.buffer.extend(data)


class FakeSession:
    def __init__(self, fs: FakeRemoteFileSystem, session_id: int, supports_concurrent_calls: bool = True) -> None:
        self.fs = fs
        self.session_id = session_id
        self.supports_concurrent_calls = supports_concurrent_calls
        self.server_version = "SSH-2.0-FakeSSH_1.0"
        self.protocol_version = 3
        self.connected = True
        self.closed = False
        self.working_directory_error: Exception | None = None

    def is_connected(self) -> bool:
        return self.connected and not self.closed

    async def probe(self, remote_path: str) -> PathProbe:
        await asyncio.sleep(0)
        self.fs.probe_calls.append(remote_path)
        if remote_path in self.fs.failing_probes:
            self.fs.failing_probes.discard(remote_path)
            return PathProbe.failed("permission denied")
        if remote_path in self.fs.directories:
            return PathProbe.found(is_directory=True)
        if remote_path in self.fs.files:
            return PathProbe.found(is_directory=False)
        return PathProbe.missing()

    async def make_directory(self, remote_path: str) -> None:
        await asyncio.sleep(0)
        self.fs.mkdir_calls.append(remote_path)
        if str(PurePosixPath(remote_path).parent) not in self.fs.directories:
            raise NotFoundError(f"{remote_path}: parent directory missing")
        if remote_path in self.fs.directories or remote_path in self.fs.files:
            raise TransferError(f"{remote_path}: already exists")
        self.fs.directories.add(remote_path)

    async def list_entries(self, remote_path: str) -> list[RemoteEntry]:
        await asyncio.sleep(0)
        if remote_path not in self.fs.directories:
            raise NotFoundError(f"{remote_path}: no such directory")

        entries = [
            RemoteEntry(name=".", path=remote_path, is_directory=True, size_bytes=0, modified_at=FIXED_MTIME),
            RemoteEntry(name="..", path=remote_path, is_directory=True, size_bytes=0, modified_at=FIXED_MTIME),
        ]
        for directory in sorted(self.fs.directories, reverse=True):
            if directory != "/" and str(PurePosixPath(directory).parent) == remote_path:
                entries.append(
                    RemoteEntry(
                        name=PurePosixPath(directory).name,
                        path=directory,
                        is_directory=True,
                        size_bytes=0,
                        modified_at=FIXED_MTIME,
                    )
                )
        for path, content in sorted(self.fs.files.items(), reverse=True):
            if str(PurePosixPath(path).parent) == remote_path:
                entries.append(
                    RemoteEntry(
                        name=PurePosixPath(path).name,
                        path=path,
                        is_directory=False,
                        size_bytes=len(content),
                        modified_at=FIXED_MTIME,
                    )
                )
        return entries

    @asynccontextmanager
    async def open_read(self, remote_path: str) -> AsyncIterator[FakeReader]:
        if remote_path not in self.fs.files:
            raise NotFoundError(f"{remote_path}: no such file")
        yield FakeReader(self.fs.files[remote_path])

    @asynccontextmanager
    async def open_write(self, remote_path: str) -> AsyncIterator[FakeWriter]:
        if str(PurePosixPath(remote_path).parent) not in self.fs.directories:
            raise NotFoundError(f"{remote_path}: parent directory missing")
        writer = FakeWriter(self.fs, remote_path)
        yield writer
        self.fs.files[remote_path] = bytes(writer.buffer)

    async def remove(self, remote_path: str) -> None:
        await asyncio.sleep(0)
        if remote_path not in self.fs.files:
            raise NotFoundError(f"{remote_path}: no such file")
        del self.fs.files[remote_path]

    async def rename(self, source_path: str, target_path: str) -> None:
        await asyncio.sleep(0)
        if source_path not in self.fs.files:
            raise NotFoundError(f"{source_path}: no such file")
        self.fs.files[target_path] = self.fs.files.pop(source_path)

    async def working_directory(self) -> str:
        if self.working_directory_error is not None:
            raise self.working_directory_error
        return "/home/tester"

    async def close(self) -> None:
        self.closed = True


class FakeConnector:
    def __init__(self, fs: FakeRemoteFileSystem, failures: int = 0, supports_concurrent_calls: bool = True) -> None:
        self.fs = fs
        self.failures_remaining = failures
        self.supports_concurrent_calls = supports_concurrent_calls
        self.calls = 0
        self.sessions: list[FakeSession] = []

    async def __call__(self, config: SftpConfig) -> FakeSession:
        self.calls += 1
        await asyncio.sleep(0)
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
            raise OSError("connection refused")

        session = FakeSession(self.fs, len(self.sessions) + 1, self.supports_concurrent_calls)
        self.sessions.append(session)
        return session


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sftp_config() -> SftpConfig:
    return SftpConfig(host="sftp.example.com", username="tester", password="secret", root_directory="/data")


@pytest.fixture
def remote_fs() -> FakeRemoteFileSystem:
    fs = FakeRemoteFileSystem()
    fs.add_directory("/data")
    return fs


@pytest.fixture
def connector(remote_fs: FakeRemoteFileSystem) -> FakeConnector:
    return FakeConnector(remote_fs)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def connection_factory(
    sftp_config: SftpConfig, connector: FakeConnector, recording_sleep: RecordingSleep
) -> ConnectionFactory:
    return ConnectionFactory(sftp_config, connector=connector, sleep=recording_sleep)


@pytest.fixture
def make_service(sftp_config: SftpConfig, connection_factory: ConnectionFactory):
    async def _make(policy: str = "pooled", max_pool_size: int = 5) -> SftpFileService:
        sessions = create_session_manager(connection_factory, policy=policy, max_pool_size=max_pool_size)
        await sessions.open()
        return SftpFileService(sftp_config, sessions)

    return _make
