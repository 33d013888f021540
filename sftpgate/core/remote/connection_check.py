from __future__ import annotations

import logging

from core.transfers.file_service import SftpFileService


async def run_connection_check(service: SftpFileService, logger: logging.Logger) -> tuple[bool, str]:
    info_result = await service.get_server_info()
    if not info_result.success or info_result.data is None:
        return False, info_result.message

    info = info_result.data
    logger.info(
        "Connected to %s:%s as %s (%s, SFTP v%s, cwd %s)",
        info.host,
        info.port,
        info.username,
        info.server_version,
        info.protocol_version,
        info.working_directory,
    )

    ensure_result = await service.create_directory("")
    if not ensure_result.success:
        return False, ensure_result.message

    list_result = await service.list_files()
    if not list_result.success:
        return False, list_result.message

    entry_count = len(list_result.data.entries) if list_result.data is not None else 0
    return True, f"ok ({entry_count} entries in {service.paths.root})"
