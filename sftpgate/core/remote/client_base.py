from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncContextManager, Protocol


@dataclass(slots=True)
class RemoteEntry:
    name: str
    path: str
    is_directory: bool
    size_bytes: int
    modified_at: datetime | None


class ProbeState(str, Enum):
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    PROBE_FAILED = "probe_failed"


@dataclass(frozen=True, slots=True)
class PathProbe:
    state: ProbeState
    is_directory: bool = False
    reason: str | None = None

    @property
    def exists(self) -> bool:
        return self.state == ProbeState.EXISTS

    @classmethod
    def found(cls, is_directory: bool) -> PathProbe:
        return cls(state=ProbeState.EXISTS, is_directory=is_directory)

    @classmethod
    def missing(cls) -> PathProbe:
        return cls(state=ProbeState.NOT_EXISTS)

    @classmethod
    def failed(cls, reason: str) -> PathProbe:
        return cls(state=ProbeState.PROBE_FAILED, reason=reason)


class RemoteReader(Protocol):
    async def read(self, size: int) -> bytes: ...


class RemoteWriter(Protocol):
    async def write(self, data: bytes) -> None: ...


class RemoteSession(Protocol):
    """One authenticated, connected SFTP channel.

    ``supports_concurrent_calls`` tells a shared-handle session manager
    whether several operations may issue requests on this session at once.
    """

    supports_concurrent_calls: bool

    @property
    def server_version(self) -> str: ...

    @property
    def protocol_version(self) -> int: ...

    def is_connected(self) -> bool: ...

    async def probe(self, remote_path: str) -> PathProbe: ...

    async def make_directory(self, remote_path: str) -> None: ...

    async def list_entries(self, remote_path: str) -> list[RemoteEntry]: ...

    def open_read(self, remote_path: str) -> AsyncContextManager[RemoteReader]: ...

    def open_write(self, remote_path: str) -> AsyncContextManager[RemoteWriter]: ...

    async def remove(self, remote_path: str) -> None: ...

    async def rename(self, source_path: str, target_path: str) -> None: ...

    async def working_directory(self) -> str: ...

    async def close(self) -> None: ...


class SessionManager(Protocol):
    @property
    def exclusive(self) -> bool: ...

    @property
    def outstanding(self) -> int: ...

    @property
    def closed(self) -> bool: ...

    async def open(self) -> None: ...

    async def shutdown(self) -> None: ...

    async def acquire(self) -> RemoteSession: ...

    async def release(self, session: RemoteSession | None) -> None: ...

    def session(self) -> AsyncContextManager[RemoteSession]: ...
