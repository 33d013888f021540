from core.transfers.file_service import SftpFileService
from core.transfers.progress import BatchTransferProgress, ProgressReporter, SyncProgress, TransferProgress
from core.transfers.transfer_models import (
    FileEntry,
    FileStatus,
    FileTransferStatus,
    OperationResult,
    SyncDirection,
    UploadSource,
)

__all__ = [
    "SftpFileService",
    "BatchTransferProgress",
    "ProgressReporter",
    "SyncProgress",
    "TransferProgress",
    "FileEntry",
    "FileStatus",
    "FileTransferStatus",
    "OperationResult",
    "SyncDirection",
    "UploadSource",
]
