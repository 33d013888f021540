from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

from core.paths import get_config_path
from core.profiles.credentials import CredentialService
from core.profiles.models import SftpConfig
from core.remote.errors import ConfigurationError


class AppConfig:
    _SUPPORTED_POLICIES = {"pooled", "single"}
    _SUPPORTED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}

    _DEFAULTS: dict[str, Any] = {
        "sftp": {
            "host": "",
            "port": 22,
            "username": "",
            "password": None,
            "private_key_path": None,
            "private_key_passphrase": None,
            "connect_timeout_ms": 30000,
            "root_directory": "/",
            "tenant_id": "0",
            "known_hosts_path": None,
            "verify_host_key": True,
        },
        "session_policy": "pooled",
        "max_pool_size": 5,
        "log_level": "INFO",
        "use_keyring": False,
    }

    def __init__(
        self,
        config_path: Path | None = None,
        credential_service: CredentialService | None = None,
    ) -> None:
        self._config_path = config_path or get_config_path()
        self._credential_service = credential_service
        self._data: dict[str, Any] = {}
        self._load_or_create()

    @property
    def path(self) -> Path:
        return self._config_path

    def _load_or_create(self) -> None:
        if not self._config_path.exists():
            self._data = copy.deepcopy(self._DEFAULTS)
            self.save()
            return

        try:
            content = self._config_path.read_text(encoding="utf-8")
            loaded = json.loads(content)
            if not isinstance(loaded, dict):
                loaded = {}
        except (json.JSONDecodeError, OSError):
            loaded = {}

        self._data = copy.deepcopy(self._DEFAULTS)
        sftp_section = loaded.pop("sftp", None)
        self._data.update(loaded)
        if isinstance(sftp_section, dict):
            self._data["sftp"].update(sftp_section)

        policy = str(self._data.get("session_policy", self._DEFAULTS["session_policy"])).strip().lower()
        if policy not in self._SUPPORTED_POLICIES:
            policy = self._DEFAULTS["session_policy"]
        self._data["session_policy"] = policy

        log_level = str(self._data.get("log_level", self._DEFAULTS["log_level"])).strip().upper()
        if log_level not in self._SUPPORTED_LOG_LEVELS:
            log_level = self._DEFAULTS["log_level"]
        self._data["log_level"] = log_level

    def save(self) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(
            json.dumps(self._data, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def get_session_policy(self) -> str:
        return str(self._data.get("session_policy", self._DEFAULTS["session_policy"]))

    def set_session_policy(self, policy: str) -> None:
        normalized = policy.strip().lower()
        if normalized not in self._SUPPORTED_POLICIES:
            raise ConfigurationError(f"Unsupported session policy: {policy}")
        self._data["session_policy"] = normalized
        self.save()

    def get_max_pool_size(self) -> int:
        value = self._data.get("max_pool_size", self._DEFAULTS["max_pool_size"])
        try:
            size = int(value)
        except (TypeError, ValueError):
            return int(self._DEFAULTS["max_pool_size"])
        return size if size > 0 else int(self._DEFAULTS["max_pool_size"])

    def get_log_level(self) -> str:
        return str(self._data.get("log_level", self._DEFAULTS["log_level"]))

    def get_use_keyring(self) -> bool:
        return bool(self._data.get("use_keyring", self._DEFAULTS["use_keyring"]))

    def get_sftp_config(self) -> SftpConfig:
        section = self._data.get("sftp")
        if not isinstance(section, dict):
            raise ConfigurationError("Missing 'sftp' configuration section")

        password = _optional_str(section.get("password"))
        private_key_path = _optional_str(section.get("private_key_path"))
        host = str(section.get("host") or "").strip()
        username = str(section.get("username") or "").strip()

        try:
            port = int(section.get("port", 22))
            connect_timeout_ms = int(section.get("connect_timeout_ms", 30000))
        except (TypeError, ValueError) as error:
            raise ConfigurationError(f"Invalid numeric SFTP setting: {error}") from error

        if password is None and private_key_path is None and self.get_use_keyring() and host and username:
            password = self._credentials().get_password(host, port, username)

        return SftpConfig(
            host=host,
            username=username,
            port=port,
            password=password,
            private_key_path=private_key_path,
            private_key_passphrase=_optional_str(section.get("private_key_passphrase")),
            connect_timeout_ms=connect_timeout_ms,
            root_directory=str(section.get("root_directory") or "/"),
            tenant_id=str(section.get("tenant_id") or "0"),
            known_hosts_path=_optional_str(section.get("known_hosts_path")),
            verify_host_key=bool(section.get("verify_host_key", True)),
        )

    def _credentials(self) -> CredentialService:
        if self._credential_service is None:
            self._credential_service = CredentialService()
        return self._credential_service


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() != "" else None
