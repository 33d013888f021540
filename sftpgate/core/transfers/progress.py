from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Generic, TypeVar

from core.transfers.transfer_models import SyncDirection

P = TypeVar("P")


def _percentage(done: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return done / total * 100.0


@dataclass(frozen=True, slots=True)
class TransferProgress:
    file_name: str
    bytes_transferred: int
    total_bytes: int

    @property
    def percentage(self) -> float:
        return _percentage(self.bytes_transferred, self.total_bytes)


@dataclass(frozen=True, slots=True)
class BatchTransferProgress:
    total_files: int
    processed_files: int
    failed_files: int
    current_file: str

    @property
    def percentage(self) -> float:
        return _percentage(self.processed_files, self.total_files)


@dataclass(frozen=True, slots=True)
class SyncProgress:
    total_files: int
    processed_files: int
    failed_files: int
    current_file: str
    direction: SyncDirection

    @property
    def percentage(self) -> float:
        return _percentage(self.processed_files, self.total_files)


class ProgressReporter(Generic[P]):
    """Forwards snapshots to an optional observer callback.

    A failing observer is logged and otherwise ignored so that it cannot
    abort the transfer it is watching.
    """

    def __init__(self, callback: Callable[[P], None] | None, logger: logging.Logger | None = None) -> None:
        self._callback = callback
        self._logger = logger or logging.getLogger("sftpgate.progress")

    @property
    def enabled(self) -> bool:
        return self._callback is not None

    def report(self, snapshot: P) -> None:
        if self._callback is None:
            return
        try:
            self._callback(snapshot)
        except Exception as error:
            self._logger.warning("Progress observer failed: %s", error)
