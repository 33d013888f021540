from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.config import AppConfig
from core.paths import CONFIG_ENV_VAR, get_config_path
from core.remote.errors import ConfigurationError


class FakeCredentialService:
    def __init__(self, password: str | None) -> None:
        self.password = password
        self.lookups: list[tuple[str, int, str]] = []

    def get_password(self, host: str, port: int, username: str) -> str | None:
        self.lookups.append((host, port, username))
        return self.password


def _write_config(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


def test_missing_file_is_created_with_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.json"

    config = AppConfig(config_path)

    assert config_path.exists()
    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["session_policy"] == "pooled"
    assert saved["sftp"]["port"] == 22
    assert config.get_max_pool_size() == 5
    assert config.get_log_level() == "INFO"


def test_sftp_section_is_merged_over_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    _write_config(
        config_path,
        {
            "sftp": {"host": "files.example.com", "username": "ops", "password": "pw", "root_directory": "/srv"},
            "session_policy": "SINGLE",
            "log_level": "debug",
        },
    )

    config = AppConfig(config_path)
    sftp = config.get_sftp_config()

    assert config.get_session_policy() == "single"
    assert config.get_log_level() == "DEBUG"
    assert sftp.host == "files.example.com"
    assert sftp.port == 22
    assert sftp.root_directory == "/srv"
    assert sftp.connect_timeout_ms == 30000


def test_invalid_values_fall_back(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    _write_config(config_path, {"session_policy": "roundrobin", "log_level": "LOUD", "max_pool_size": "many"})

    config = AppConfig(config_path)

    assert config.get_session_policy() == "pooled"
    assert config.get_log_level() == "INFO"
    assert config.get_max_pool_size() == 5


def test_corrupt_file_uses_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not json", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.get_session_policy() == "pooled"


def test_set_session_policy_validates(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "config.json")

    config.set_session_policy("Single")
    with pytest.raises(ConfigurationError):
        config.set_session_policy("roundrobin")

    assert AppConfig(tmp_path / "config.json").get_session_policy() == "single"


def test_incomplete_sftp_section_is_rejected(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "config.json")

    with pytest.raises(ConfigurationError):
        config.get_sftp_config()


def test_non_numeric_port_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    _write_config(config_path, {"sftp": {"host": "h", "username": "u", "password": "p", "port": "ssh"}})

    with pytest.raises(ConfigurationError):
        AppConfig(config_path).get_sftp_config()


def test_password_is_read_from_keyring(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    _write_config(config_path, {"sftp": {"host": "h", "username": "u", "port": 2222}, "use_keyring": True})
    credentials = FakeCredentialService("from-keyring")

    sftp = AppConfig(config_path, credential_service=credentials).get_sftp_config()

    assert sftp.password == "from-keyring"
    assert credentials.lookups == [("h", 2222, "u")]


def test_keyring_is_not_used_when_password_present(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    _write_config(config_path, {"sftp": {"host": "h", "username": "u", "password": "pw"}, "use_keyring": True})
    credentials = FakeCredentialService("from-keyring")

    sftp = AppConfig(config_path, credential_service=credentials).get_sftp_config()

    assert sftp.password == "pw"
    assert credentials.lookups == []


def test_config_path_honours_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "custom.json"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(target))

    assert get_config_path() == target.resolve()
