from __future__ import annotations

import logging

from core.remote.client_base import PathProbe, ProbeState, RemoteSession
from core.remote.errors import TransferError

_logger = logging.getLogger("sftpgate.directories")


async def probe_directory(session: RemoteSession, remote_path: str) -> PathProbe:
    probe = await session.probe(remote_path)
    if probe.state == ProbeState.PROBE_FAILED:
        _logger.debug("Could not probe %s: %s", remote_path, probe.reason)
    return probe


async def ensure_directory(session: RemoteSession, remote_path: str, known: set[str] | None = None) -> None:
    """Create ``remote_path`` and any missing ancestors.

    ``known`` holds prefixes already ensured during the current operation;
    they are neither probed nor created again, and newly ensured prefixes
    are added to it.
    """
    current_path = ""
    for segment in (part for part in remote_path.split("/") if part):
        current_path = f"{current_path}/{segment}"
        if known is not None and current_path in known:
            continue

        probe = await probe_directory(session, current_path)
        if probe.exists and not probe.is_directory:
            raise TransferError(f"{current_path} exists and is not a directory")
        if not probe.exists:
            await _create_directory(session, current_path)

        if known is not None:
            known.add(current_path)


async def _create_directory(session: RemoteSession, remote_path: str) -> None:
    try:
        await session.make_directory(remote_path)
    except Exception:
        # Someone else may have created it between the probe and mkdir.
        retry = await session.probe(remote_path)
        if retry.exists and retry.is_directory:
            return
        raise
    _logger.debug("Created remote directory %s", remote_path)
