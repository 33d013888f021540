from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Callable, Sequence

from core.profiles.models import SftpConfig
from core.remote.client_base import PathProbe, ProbeState, RemoteSession, SessionManager
from core.remote.directories import ensure_directory
from core.remote.errors import NotFoundError, SftpGateError, TransferError, ValidationError, error_code_for
from core.remote.remote_paths import RemotePathResolver, generate_file_name, parent_directory, safe_file_name
from core.transfers.execute_local import collect_local_files
from core.transfers.progress import BatchTransferProgress, ProgressReporter, SyncProgress, TransferProgress
from core.transfers.transfer_models import (
    BatchUploadResult,
    ChecksumResult,
    CopyResult,
    DeleteResult,
    DirectoryResult,
    DownloadResult,
    FileEntry,
    FileStatus,
    FileTransferStatus,
    ListResult,
    MoveResult,
    OperationResult,
    ServerInfo,
    SyncDirection,
    SyncResult,
    UploadResult,
    UploadSource,
)

CHUNK_SIZE = 65536

HASH_ALGORITHMS: dict[str, Callable[[], Any]] = {
    "MD5": hashlib.md5,
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


class SftpFileService:
    """File operations against the configured SFTP server.

    Every public coroutine borrows a session from the session manager for
    its whole duration and returns an :class:`OperationResult`; failures
    are logged and reported in the result instead of being raised.
    """

    def __init__(
        self,
        config: SftpConfig,
        sessions: SessionManager,
        paths: RemotePathResolver | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._sessions = sessions
        self._paths = paths or RemotePathResolver(config.root_directory, config.tenant_id)
        self._logger = logger or logging.getLogger("sftpgate.files")

    @property
    def paths(self) -> RemotePathResolver:
        return self._paths

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def for_tenant(self, tenant_id: str) -> SftpFileService:
        return SftpFileService(self._config, self._sessions, self._paths.for_tenant(tenant_id), self._logger)

    async def upload_file(
        self,
        content: BinaryIO | None,
        length: int,
        original_name: str,
        remote_dir: str | None = None,
        *,
        module: str | None = None,
        series: int = 0,
        on_progress: Callable[[TransferProgress], None] | None = None,
    ) -> OperationResult[UploadResult]:
        if content is None or length <= 0:
            return OperationResult.failed("File is empty or null", error_code=ValidationError.code)

        reporter = ProgressReporter(on_progress, self._logger)
        try:
            if module:
                file_name = generate_file_name(module, series, original_name)
            else:
                file_name = safe_file_name(original_name)
            remote_path = self._paths.resolve(remote_dir, file_name)

            async with self._sessions.session() as session:
                await self._ensure_parent(session, remote_path)
                written = await self._write_stream(session, remote_path, content, file_name, length, reporter)
        except Exception as error:
            return self._failure("Upload failed", error, "Error uploading file %s", original_name)

        self._logger.info("File uploaded successfully: %s to %s", file_name, remote_path)
        return OperationResult.ok(
            "File uploaded successfully",
            UploadResult(file_name=file_name, remote_path=remote_path, size=written),
        )

    async def batch_upload(
        self,
        files: Sequence[UploadSource],
        remote_dir: str | None = None,
        on_progress: Callable[[BatchTransferProgress], None] | None = None,
    ) -> OperationResult[BatchUploadResult]:
        sources = list(files)
        if not sources:
            return OperationResult.failed("No files provided for batch upload", error_code=ValidationError.code)

        reporter = ProgressReporter(on_progress, self._logger)
        total_files = len(sources)
        results: list[FileStatus] = []
        failed_files = 0

        for processed_files, source in enumerate(sources, start=1):
            outcome = await self.upload_file(source.content, source.length, source.file_name, remote_dir)
            if outcome.success:
                results.append(FileStatus(file_name=source.file_name, status=FileTransferStatus.SUCCESS))
            else:
                failed_files += 1
                results.append(
                    FileStatus(file_name=source.file_name, status=FileTransferStatus.FAILED, error=outcome.message)
                )

            reporter.report(
                BatchTransferProgress(
                    total_files=total_files,
                    processed_files=processed_files,
                    failed_files=failed_files,
                    current_file=source.file_name,
                )
            )

        success_count = total_files - failed_files
        self._logger.info(
            "Batch upload completed: %s/%s files uploaded successfully", success_count, total_files
        )
        return OperationResult(
            success=failed_files == 0,
            message=f"Batch upload completed: {success_count}/{total_files} files uploaded successfully",
            data=BatchUploadResult(
                results=results,
                total_files=total_files,
                processed_files=len(results),
                success_count=success_count,
                failed_count=failed_files,
            ),
            error_code=None if failed_files == 0 else TransferError.code,
        )

    async def download_file(self, remote_file_path: str) -> OperationResult[DownloadResult]:
        try:
            remote_path = self._paths.resolve(remote_file_path)
            async with self._sessions.session() as session:
                missing = self._require_existing(await session.probe(remote_path), "Download failed", "File not found")
                if missing is not None:
                    return missing
                content = await self._read_all(session, remote_path)
        except Exception as error:
            return self._failure("Download failed", error, "Error downloading file %s", remote_file_path)

        file_name = PurePosixPath(remote_path).name
        self._logger.info("File downloaded successfully: %s", file_name)
        return OperationResult.ok(
            "File downloaded successfully",
            DownloadResult(file_name=file_name, content=content, size=len(content)),
        )

    async def delete_file(self, remote_file_path: str) -> OperationResult[DeleteResult]:
        try:
            remote_path = self._paths.resolve(remote_file_path)
            async with self._sessions.session() as session:
                missing = self._require_existing(await session.probe(remote_path), "Delete failed", "File not found")
                if missing is not None:
                    return missing
                await session.remove(remote_path)
        except Exception as error:
            return self._failure("Delete failed", error, "Error deleting file %s", remote_file_path)

        self._logger.info("File deleted successfully: %s", remote_path)
        return OperationResult.ok("File deleted successfully", DeleteResult(deleted_file=remote_file_path))

    async def list_files(self, remote_dir: str | None = None) -> OperationResult[ListResult]:
        try:
            remote_path = self._paths.resolve(remote_dir)
            async with self._sessions.session() as session:
                probe = await session.probe(remote_path)
                missing = self._require_existing(probe, "Failed to retrieve file list", "Directory not found")
                if missing is not None:
                    return missing
                if not probe.is_directory:
                    return OperationResult.failed(
                        f"Not a directory: {remote_dir or remote_path}", error_code=ValidationError.code
                    )
                raw_entries = await session.list_entries(remote_path)
        except Exception as error:
            return self._failure("Failed to retrieve file list", error, "Error retrieving file list for %s", remote_dir)

        entries = [
            FileEntry(
                name=entry.name,
                size=entry.size_bytes,
                last_modified=entry.modified_at,
                path=self._paths.relative_to_root(entry.path),
                is_directory=entry.is_directory,
            )
            for entry in raw_entries
            if entry.name not in (".", "..")
        ]
        entries.sort(key=lambda entry: (not entry.is_directory, entry.name))

        self._logger.info("Retrieved file list for directory: %s", remote_path)
        return OperationResult.ok(
            "File list retrieved successfully",
            ListResult(directory=remote_path, entries=entries),
        )

    async def create_directory(self, remote_dir: str) -> OperationResult[DirectoryResult]:
        try:
            remote_path = self._paths.resolve(remote_dir)
            async with self._sessions.session() as session:
                await ensure_directory(session, remote_path)
        except Exception as error:
            return self._failure("Directory creation failed", error, "Error creating directory %s", remote_dir)

        self._logger.info("Directory created successfully: %s", remote_path)
        return OperationResult.ok("Directory created successfully", DirectoryResult(directory_path=remote_dir))

    async def file_exists(self, remote_file_path: str) -> bool:
        try:
            remote_path = self._paths.resolve(remote_file_path)
            async with self._sessions.session() as session:
                probe = await session.probe(remote_path)
        except Exception as error:
            self._logger.error("Error checking file existence %s: %s", remote_file_path, error)
            return False

        if probe.state == ProbeState.PROBE_FAILED:
            self._logger.warning("Could not check existence of %s: %s", remote_path, probe.reason)
        return probe.exists

    async def move_file(self, source_file: str, destination_file: str) -> OperationResult[MoveResult]:
        try:
            source_path = self._paths.resolve(source_file)
            destination_path = self._paths.resolve(destination_file)
            async with self._sessions.session() as session:
                missing = self._require_existing(
                    await session.probe(source_path), "Move failed", "Source file not found"
                )
                if missing is not None:
                    return missing
                await self._ensure_parent(session, destination_path)
                await session.rename(source_path, destination_path)
        except Exception as error:
            return self._failure(
                "Move failed", error, "Error moving file from %s to %s", source_file, destination_file
            )

        self._logger.info("File moved successfully from %s to %s", source_file, destination_file)
        return OperationResult.ok(
            "File moved successfully",
            MoveResult(source_file=source_file, destination_file=destination_file),
        )

    async def copy_file(self, source_file: str, destination_file: str) -> OperationResult[CopyResult]:
        try:
            source_path = self._paths.resolve(source_file)
            destination_path = self._paths.resolve(destination_file)
            async with self._sessions.session() as session:
                missing = self._require_existing(
                    await session.probe(source_path), "Copy failed", "Source file not found"
                )
                if missing is not None:
                    return missing
                await self._ensure_parent(session, destination_path)

                copied = 0
                async with session.open_read(source_path) as source_stream:
                    async with session.open_write(destination_path) as destination_stream:
                        while True:
                            chunk = await source_stream.read(CHUNK_SIZE)
                            if not chunk:
                                break
                            await destination_stream.write(chunk)
                            copied += len(chunk)
        except Exception as error:
            return self._failure(
                "Copy failed", error, "Error copying file from %s to %s", source_file, destination_file
            )

        self._logger.info("File copied successfully from %s to %s", source_file, destination_file)
        return OperationResult.ok(
            "File copied successfully",
            CopyResult(source_file=source_file, destination_file=destination_file, bytes_copied=copied),
        )

    async def get_checksum(self, remote_file_path: str, algorithm: str = "SHA256") -> OperationResult[ChecksumResult]:
        algorithm_name = algorithm.strip().upper()
        hash_factory = HASH_ALGORITHMS.get(algorithm_name)
        if hash_factory is None:
            return OperationResult.failed(
                f"Checksum calculation failed: Unsupported hash algorithm: {algorithm}",
                error_code=ValidationError.code,
            )

        try:
            remote_path = self._paths.resolve(remote_file_path)
            async with self._sessions.session() as session:
                missing = self._require_existing(
                    await session.probe(remote_path), "Checksum calculation failed", "File not found"
                )
                if missing is not None:
                    return missing

                hasher = hash_factory()
                async with session.open_read(remote_path) as remote_file:
                    while True:
                        chunk = await remote_file.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        hasher.update(chunk)
        except Exception as error:
            return self._failure(
                "Checksum calculation failed", error, "Error calculating checksum for %s", remote_file_path
            )

        checksum = hasher.hexdigest().lower()
        self._logger.info("Calculated %s checksum for %s: %s", algorithm_name, remote_file_path, checksum)
        return OperationResult.ok(
            f"{algorithm_name} checksum calculated successfully",
            ChecksumResult(file_path=remote_file_path, algorithm=algorithm_name, checksum=checksum),
        )

    async def sync_directory(
        self,
        local_root: str | Path,
        remote_root: str,
        direction: SyncDirection | str = SyncDirection.LOCAL_TO_REMOTE,
        on_progress: Callable[[SyncProgress], None] | None = None,
    ) -> OperationResult[SyncResult]:
        try:
            sync_direction = SyncDirection(direction)
        except ValueError:
            return OperationResult.failed(f"Unknown sync direction: {direction}", error_code=ValidationError.code)
        if sync_direction != SyncDirection.LOCAL_TO_REMOTE:
            return OperationResult.failed(
                f"Sync direction {sync_direction.value} is not supported", error_code=ValidationError.code
            )

        local_path = Path(local_root)
        if not local_path.is_dir():
            return OperationResult.failed("Local directory not found", error_code=NotFoundError.code)

        reporter = ProgressReporter(on_progress, self._logger)
        results: list[FileStatus] = []
        failed_files = 0

        try:
            remote_base = self._paths.resolve(remote_root)
            local_files = await asyncio.to_thread(collect_local_files, local_path)
            total_files = len(local_files)

            async with self._sessions.session() as session:
                ensured: set[str] = set()
                for processed_files, (file_path, relative_path) in enumerate(local_files, start=1):
                    target_path = self._paths.build_remote_path(remote_base, relative_path)
                    try:
                        await self._ensure_parent(session, target_path, ensured)
                        await self._upload_local_file(session, file_path, target_path, relative_path)
                        results.append(FileStatus(file_name=relative_path, status=FileTransferStatus.UPLOADED))
                    except Exception as error:
                        failed_files += 1
                        self._logger.warning("Failed to sync %s to %s: %s", file_path, target_path, error)
                        results.append(
                            FileStatus(file_name=relative_path, status=FileTransferStatus.FAILED, error=str(error))
                        )

                    reporter.report(
                        SyncProgress(
                            total_files=total_files,
                            processed_files=processed_files,
                            failed_files=failed_files,
                            current_file=relative_path,
                            direction=sync_direction,
                        )
                    )
        except Exception as error:
            return self._failure("Synchronization failed", error, "Error during directory synchronization of %s", local_root)

        uploaded = len(results) - failed_files
        self._logger.info(
            "Directory sync completed: %s between %s and %s (%s/%s files uploaded)",
            sync_direction.value,
            local_root,
            remote_base,
            uploaded,
            len(results),
        )
        return OperationResult.ok(
            "Directory synchronization completed",
            SyncResult(
                direction=sync_direction,
                local_path=str(local_root),
                remote_path=remote_root,
                results=results,
                uploaded_count=uploaded,
                failed_count=failed_files,
            ),
        )

    async def sync_directory_local_to_remote(
        self,
        local_root: str | Path,
        remote_root: str,
        on_progress: Callable[[SyncProgress], None] | None = None,
    ) -> OperationResult[SyncResult]:
        return await self.sync_directory(local_root, remote_root, SyncDirection.LOCAL_TO_REMOTE, on_progress)

    async def get_server_info(self) -> OperationResult[ServerInfo]:
        try:
            async with self._sessions.session() as session:
                try:
                    working_directory = await session.working_directory()
                except Exception as error:
                    self._logger.debug("Could not read working directory: %s", error)
                    working_directory = "Unknown"

                info = ServerInfo(
                    server_version=session.server_version,
                    protocol_version=session.protocol_version,
                    is_connected=session.is_connected(),
                    working_directory=working_directory,
                    host=self._config.host,
                    port=self._config.port,
                    username=self._config.username,
                )
        except Exception as error:
            return self._failure("Failed to retrieve server information", error, "Error retrieving server information")

        self._logger.info("Retrieved server information for %s:%s", self._config.host, self._config.port)
        return OperationResult.ok("Server information retrieved successfully", info)

    async def _ensure_parent(self, session: RemoteSession, remote_path: str, known: set[str] | None = None) -> None:
        directory = parent_directory(remote_path)
        if directory != "/":
            await ensure_directory(session, directory, known)

    async def _write_stream(
        self,
        session: RemoteSession,
        remote_path: str,
        content: BinaryIO,
        file_name: str,
        total_bytes: int,
        reporter: ProgressReporter[TransferProgress] | None = None,
    ) -> int:
        written = 0
        async with session.open_write(remote_path) as remote_file:
            while True:
                chunk = await asyncio.to_thread(content.read, CHUNK_SIZE)
                if chunk == b"":
                    break
                await remote_file.write(chunk)
                written += len(chunk)
                if reporter is not None:
                    reporter.report(
                        TransferProgress(file_name=file_name, bytes_transferred=written, total_bytes=total_bytes)
                    )
        return written

    async def _upload_local_file(
        self, session: RemoteSession, file_path: Path, remote_path: str, relative_path: str
    ) -> int:
        handle = await asyncio.to_thread(file_path.open, "rb")
        try:
            size = (await asyncio.to_thread(file_path.stat)).st_size
            return await self._write_stream(session, remote_path, handle, relative_path, size)
        finally:
            await asyncio.to_thread(handle.close)

    async def _read_all(self, session: RemoteSession, remote_path: str) -> bytes:
        chunks: list[bytes] = []
        async with session.open_read(remote_path) as remote_file:
            while True:
                chunk = await remote_file.read(CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(bytes(chunk))
        return b"".join(chunks)

    def _require_existing(
        self, probe: PathProbe, failure_prefix: str, not_found_message: str
    ) -> OperationResult[Any] | None:
        if probe.state == ProbeState.NOT_EXISTS:
            return OperationResult.failed(not_found_message, error_code=NotFoundError.code)
        if probe.state == ProbeState.PROBE_FAILED:
            return OperationResult.failed(f"{failure_prefix}: {probe.reason}", error_code=SftpGateError.code)
        return None

    def _failure(self, prefix: str, error: Exception, log_message: str, *args: object) -> OperationResult[Any]:
        if isinstance(error, SftpGateError):
            self._logger.error(log_message + ": %s", *args, error)
        else:
            self._logger.exception(log_message, *args)
        return OperationResult.failed(f"{prefix}: {error}", error_code=error_code_for(error))
