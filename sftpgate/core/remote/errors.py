from __future__ import annotations


class SftpGateError(Exception):
    code = "unknown_error"


class ConfigurationError(SftpGateError):
    code = "configuration_error"


class SftpConnectionError(SftpGateError):
    code = "connection_error"

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class SessionManagerClosedError(SftpConnectionError):
    def __init__(self, message: str = "session manager is shut down") -> None:
        super().__init__(message)


class NotFoundError(SftpGateError):
    code = "not_found"


class ValidationError(SftpGateError):
    code = "validation_error"


class PathTraversalError(ValidationError):
    pass


class TransferError(SftpGateError):
    code = "transfer_error"


def error_code_for(error: BaseException) -> str:
    if isinstance(error, SftpGateError):
        return error.code
    if isinstance(error, OSError):
        return TransferError.code
    return SftpGateError.code
