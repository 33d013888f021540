from __future__ import annotations

import keyring


class CredentialService:
    _SERVICE_NAME = "sftpgate"

    def _credential_key(self, host: str, port: int, username: str) -> str:
        return f"sftp:{host}:{port}:user:{username}"

    def set_password(self, host: str, port: int, username: str, password: str) -> None:
        keyring.set_password(self._SERVICE_NAME, self._credential_key(host, port, username), password)

    def get_password(self, host: str, port: int, username: str) -> str | None:
        return keyring.get_password(self._SERVICE_NAME, self._credential_key(host, port, username))

    def delete_password(self, host: str, port: int, username: str) -> None:
        key = self._credential_key(host, port, username)
        try:
            keyring.delete_password(self._SERVICE_NAME, key)
        except keyring.errors.PasswordDeleteError:
            pass
