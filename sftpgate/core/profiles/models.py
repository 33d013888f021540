from __future__ import annotations

from dataclasses import dataclass

from core.remote.errors import ConfigurationError

TENANT_PLACEHOLDER = "{tenantId}"


@dataclass(frozen=True, slots=True)
class SftpConfig:
    host: str
    username: str
    port: int = 22
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    connect_timeout_ms: int = 30000
    root_directory: str = "/"
    tenant_id: str = "0"
    known_hosts_path: str | None = None
    verify_host_key: bool = True

    def __post_init__(self) -> None:
        if _is_blank(self.host):
            raise ConfigurationError("SFTP host is required")
        if _is_blank(self.username):
            raise ConfigurationError("SFTP username is required")

        has_password = not _is_blank(self.password)
        has_private_key = not _is_blank(self.private_key_path)
        if not has_password and not has_private_key:
            raise ConfigurationError("Either private_key_path or password must be provided")
        if has_password and has_private_key:
            raise ConfigurationError("Configure either private_key_path or password, not both")

        if self.port <= 0 or self.port > 65535:
            raise ConfigurationError(f"Invalid SFTP port: {self.port}")
        if self.connect_timeout_ms <= 0:
            raise ConfigurationError("connect_timeout_ms must be positive")

    @property
    def uses_private_key(self) -> bool:
        return not _is_blank(self.private_key_path)

    @property
    def connect_timeout_seconds(self) -> float:
        return self.connect_timeout_ms / 1000.0


def _is_blank(value: str | None) -> bool:
    return value is None or value.strip() == ""
