from __future__ import annotations

from pathlib import PurePosixPath
import uuid

from core.profiles.models import TENANT_PLACEHOLDER
from core.remote.errors import ConfigurationError, PathTraversalError, ValidationError


class RemotePathResolver:
    """Builds absolute remote paths under the configured root directory.

    Caller-supplied parts are always treated as relative to the root, and a
    ``..`` segment in them is rejected instead of being resolved.
    """

    def __init__(self, root_directory: str = "/", tenant_id: str = "0") -> None:
        _validate_tenant_id(tenant_id)
        self._root_template = root_directory
        self._tenant_id = tenant_id

        root_segments = _split_segments(root_directory.replace(TENANT_PLACEHOLDER, tenant_id))
        if ".." in root_segments:
            raise ConfigurationError(f"root_directory must not contain '..': {root_directory}")
        self._root = "/" + "/".join(root_segments)

    @property
    def root(self) -> str:
        return self._root

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def for_tenant(self, tenant_id: str) -> RemotePathResolver:
        return RemotePathResolver(self._root_template, tenant_id)

    def build_remote_path(self, *parts: str | None) -> str:
        present = [part for part in parts if part is not None and part.strip() != ""]
        if not present:
            return self._root

        segments: list[str] = []
        for part in present:
            segments.extend(_split_segments(part))
        return "/" + "/".join(segments)

    def resolve(self, *relative_parts: str | None) -> str:
        for part in relative_parts:
            if part is not None and ".." in _split_segments(part):
                raise PathTraversalError(f"Path escapes the root directory: {part}")
        return self.build_remote_path(self._root, *relative_parts)

    def relative_to_root(self, remote_path: str) -> str:
        if self._root != "/":
            if remote_path == self._root:
                return ""
            if remote_path.startswith(self._root + "/"):
                return remote_path[len(self._root) + 1 :]
        return remote_path.lstrip("/")


def parent_directory(remote_path: str) -> str:
    return str(PurePosixPath(remote_path).parent)


def safe_file_name(original_name: str) -> str:
    name = PurePosixPath(original_name.replace("\\", "/")).name
    if name in ("", ".", ".."):
        raise ValidationError(f"Invalid file name: {original_name!r}")
    return name


def generate_file_name(module: str, series: int, original_name: str) -> str:
    extension = PurePosixPath(safe_file_name(original_name)).suffix
    random_part = uuid.uuid4().hex[:11]
    return f"{module}_{series:04d}_{random_part}{extension}"


def _split_segments(path: str) -> list[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment not in ("", ".")]


def _validate_tenant_id(tenant_id: str) -> None:
    if tenant_id.strip() == "" or tenant_id in (".", "..") or "/" in tenant_id or "\\" in tenant_id:
        raise ValidationError(f"Invalid tenant id: {tenant_id!r}")
