from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import BinaryIO, Generic, TypeVar

T = TypeVar("T")


class SyncDirection(str, Enum):
    LOCAL_TO_REMOTE = "local_to_remote"
    REMOTE_TO_LOCAL = "remote_to_local"
    BIDIRECTIONAL = "bidirectional"


class FileTransferStatus(str, Enum):
    SUCCESS = "success"
    UPLOADED = "uploaded"
    FAILED = "failed"


@dataclass(slots=True)
class OperationResult(Generic[T]):
    success: bool
    message: str
    data: T | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, message: str, data: T | None = None) -> OperationResult[T]:
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, error_code: str | None = None, data: T | None = None) -> OperationResult[T]:
        return cls(success=False, message=message, data=data, error_code=error_code)


@dataclass(slots=True)
class UploadSource:
    file_name: str
    content: BinaryIO | None
    length: int


@dataclass(slots=True)
class FileStatus:
    file_name: str
    status: FileTransferStatus
    error: str | None = None


@dataclass(slots=True)
class UploadResult:
    file_name: str
    remote_path: str
    size: int


@dataclass(slots=True)
class BatchUploadResult:
    results: list[FileStatus]
    total_files: int
    processed_files: int
    success_count: int
    failed_count: int


@dataclass(slots=True)
class DownloadResult:
    file_name: str
    content: bytes
    size: int


@dataclass(slots=True)
class DeleteResult:
    deleted_file: str


@dataclass(slots=True)
class FileEntry:
    name: str
    size: int
    last_modified: datetime | None
    path: str
    is_directory: bool


@dataclass(slots=True)
class ListResult:
    directory: str
    entries: list[FileEntry] = field(default_factory=list)


@dataclass(slots=True)
class DirectoryResult:
    directory_path: str


@dataclass(slots=True)
class MoveResult:
    source_file: str
    destination_file: str


@dataclass(slots=True)
class CopyResult:
    source_file: str
    destination_file: str
    bytes_copied: int


@dataclass(slots=True)
class ChecksumResult:
    file_path: str
    algorithm: str
    checksum: str


@dataclass(slots=True)
class SyncResult:
    direction: SyncDirection
    local_path: str
    remote_path: str
    results: list[FileStatus]
    uploaded_count: int
    failed_count: int


@dataclass(slots=True)
class ServerInfo:
    server_version: str
    protocol_version: int
    is_connected: bool
    working_directory: str
    host: str
    port: int
    username: str
