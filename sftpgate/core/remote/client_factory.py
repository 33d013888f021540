from __future__ import annotations

import logging

from core.profiles.models import SftpConfig
from core.remote.client_base import SessionManager
from core.remote.connection_factory import ConnectionFactory
from core.remote.session_manager import DEFAULT_MAX_POOL_SIZE, PooledSessionManager, SingleSessionManager
from core.transfers.file_service import SftpFileService


def create_session_manager(
    factory: ConnectionFactory,
    policy: str = "pooled",
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
    logger: logging.Logger | None = None,
) -> SessionManager:
    normalized = policy.strip().lower()
    if normalized == "pooled":
        return PooledSessionManager(factory, max_pool_size=max_pool_size, logger=logger)
    if normalized == "single":
        return SingleSessionManager(factory, logger=logger)

    if logger is not None:
        logger.error("Unsupported session policy: %s", policy)
    raise ValueError(f"Unsupported session policy: {policy}")


def create_file_service(
    config: SftpConfig,
    logger: logging.Logger,
    policy: str = "pooled",
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
    factory: ConnectionFactory | None = None,
) -> SftpFileService:
    connection_factory = factory or ConnectionFactory(config, logger=logger.getChild("connection"))
    sessions = create_session_manager(
        connection_factory,
        policy=policy,
        max_pool_size=max_pool_size,
        logger=logger.getChild("sessions"),
    )
    return SftpFileService(config, sessions, logger=logger.getChild("files"))
