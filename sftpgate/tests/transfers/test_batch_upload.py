from __future__ import annotations

import io

import pytest

from core.transfers import FileTransferStatus, UploadSource


def _source(name: str, content: bytes) -> UploadSource:
    return UploadSource(file_name=name, content=io.BytesIO(content), length=len(content))


@pytest.mark.asyncio
async def test_batch_upload_all_succeed(make_service, remote_fs) -> None:
    service = await make_service()

    result = await service.batch_upload([_source("a.txt", b"a"), _source("b.txt", b"bb")], "inbox")

    assert result.success is True
    assert result.message == "Batch upload completed: 2/2 files uploaded successfully"
    assert result.data.success_count == 2
    assert result.data.failed_count == 0
    assert remote_fs.files["/data/inbox/b.txt"] == b"bb"


@pytest.mark.asyncio
async def test_batch_upload_continues_after_a_failure(make_service, remote_fs) -> None:
    remote_fs.failing_writes.add("/data/inbox/b.txt")
    service = await make_service()
    snapshots = []

    result = await service.batch_upload(
        [_source("a.txt", b"a"), _source("b.txt", b"b"), _source("c.txt", b"c")],
        "inbox",
        on_progress=snapshots.append,
    )

    assert result.success is False
    assert result.message == "Batch upload completed: 2/3 files uploaded successfully"
    assert result.data.total_files == 3
    assert result.data.processed_files == 3
    assert result.data.failed_count == 1
    assert [(status.file_name, status.status) for status in result.data.results] == [
        ("a.txt", FileTransferStatus.SUCCESS),
        ("b.txt", FileTransferStatus.FAILED),
        ("c.txt", FileTransferStatus.SUCCESS),
    ]
    assert result.data.results[1].error.startswith("Upload failed: ")
    assert "/data/inbox/c.txt" in remote_fs.files
    assert "/data/inbox/b.txt" not in remote_fs.files

    assert [snapshot.processed_files for snapshot in snapshots] == [1, 2, 3]
    assert [snapshot.failed_files for snapshot in snapshots] == [0, 1, 1]
    assert snapshots[-1].percentage == 100.0
    assert service.sessions.outstanding == 0


@pytest.mark.asyncio
async def test_batch_upload_marks_empty_entries_failed(make_service) -> None:
    service = await make_service()

    result = await service.batch_upload([_source("empty.txt", b""), _source("a.txt", b"a")])

    assert result.data.results[0].status == FileTransferStatus.FAILED
    assert result.data.results[0].error == "File is empty or null"
    assert result.data.success_count == 1


@pytest.mark.asyncio
async def test_batch_upload_requires_files(make_service) -> None:
    service = await make_service()

    result = await service.batch_upload([])

    assert result.success is False
    assert result.error_code == "validation_error"
