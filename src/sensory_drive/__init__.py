# Файл: src/sensory_drive/__init__.py

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from .client import DriveClient
from .config import get_settings, DriveClientConfig, PostgresConfig, MinioConfig, DriveConfig
from .repositories.pg_repositoryFile import FileRepository
from .repositories.pg_repositoryShare import ShareRepository
from .repositories.pg_repositoryQuota import QuotaRepository
from .repositories.pg_repositoryUser import UserRepository
from .repositories.minio_repository import MinioRepository

from .exceptions import (
    DriveClientError,
    DatabaseError,
    NotFoundError,
    InvalidRequestError,
    QuotaExceededError,
    VerificationFailedError,
    ConflictError,
    UnauthorizedError,
    StorageError,
    MinioError,
)


def _engine_kwargs(config: PostgresConfig) -> dict:
    # Пул и server_settings понимает только asyncpg; sqlite (тесты, разработка) их не принимает
    if not config.is_postgres:
        return {}
    return {
        "pool_size": config.pool_size,
        "max_overflow": config.max_overflow,
        "pool_timeout": config.pool_timeout,
        "pool_recycle": config.pool_recycle,
        "pool_pre_ping": config.pool_pre_ping,
        "connect_args": {
            "server_settings": {
                "application_name": config.application_name
            }
        },
    }


def create_drive_client(config: Optional[DriveClientConfig] = None) -> DriveClient:
    """
    Фабричная функция для создания и конфигурации DriveClient.

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :return: Сконфигурированный экземпляр DriveClient.
    """
    if config is None:
        s = get_settings()
        config = DriveClientConfig(postgres=s.postgres, minio=s.minio, drive=s.drive)

    engine = create_async_engine(config.postgres.get_pg_dsn(), **_engine_kwargs(config.postgres))
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    client = DriveClient(
        file_repo=FileRepository(session_factory, recent_days=config.drive.recent_days),
        share_repo=ShareRepository(session_factory),
        quota_repo=QuotaRepository(session_factory),
        user_repo=UserRepository(session_factory, default_storage_limit=config.drive.default_storage_limit),
        minio_repo=MinioRepository(config.minio),
        drive_config=config.drive,
    )
    client._engine = engine

    async def _aclose():
        await engine.dispose()
    client.aclose = _aclose

    return client


__all__ = [
    "DriveClient", "create_drive_client",
    "DriveClientConfig", "PostgresConfig", "MinioConfig", "DriveConfig",
    "DriveClientError", "DatabaseError", "NotFoundError", "InvalidRequestError",
    "QuotaExceededError", "VerificationFailedError", "ConflictError", "UnauthorizedError",
    "StorageError", "MinioError",
]
