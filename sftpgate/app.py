from __future__ import annotations

import asyncio
import logging

from core.config import AppConfig
from core.logging import setup_logging
from core.paths import ensure_runtime_directories
from core.remote.client_factory import create_file_service
from core.remote.connection_check import run_connection_check
from core.transfers.file_service import SftpFileService


async def _check(service: SftpFileService, logger: logging.Logger) -> bool:
    sessions = service.sessions
    await sessions.open()
    try:
        success, message = await run_connection_check(service, logger)
    finally:
        await sessions.shutdown()

    if success:
        logger.info("SFTP connection check passed: %s", message)
    else:
        logger.error("SFTP connection check failed: %s", message)
    return success


def main() -> int:
    ensure_runtime_directories()

    config = AppConfig()
    logger = setup_logging(config.get_log_level())
    logger.info("Using configuration %s", config.path)

    sftp_config = config.get_sftp_config()
    service = create_file_service(
        sftp_config,
        logger=logger,
        policy=config.get_session_policy(),
        max_pool_size=config.get_max_pool_size(),
    )

    return 0 if asyncio.run(_check(service, logger)) else 1


if __name__ == "__main__":
    raise SystemExit(main())
