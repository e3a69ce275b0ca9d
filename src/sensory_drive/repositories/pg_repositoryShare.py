# sensory_drive/repositories/pg_repositoryShare.py

import logging
import secrets
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from sensory_drive.db import FileORM
from sensory_drive.db.base import get_session
from sensory_drive.exceptions import DatabaseError, NotFoundError
from sensory_drive.models.file import PublicFileView

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 8


def generate_share_token() -> str:
    return secrets.token_hex(SHARE_TOKEN_BYTES)


class ShareRepository:
    """
    Публичные ссылки на файлы. Токен - единственный способ читать файл
    без аутентификации.
    """
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def ensure_share_token(self, file_id: UUID, user_id: UUID) -> str:
        """
        Возвращает существующий токен живого файла владельца или выпускает новый.
        Выпуск - условный UPDATE (share_token IS NULL), поэтому два одновременных
        первых запроса получают один и тот же токен.
        """
        owned_live = (FileORM.id == file_id, FileORM.user_id == user_id, FileORM.is_deleted.is_(False))
        async with get_session(self._session_factory) as session:
            try:
                current = (await session.execute(
                    select(FileORM.share_token).where(*owned_live)
                )).one_or_none()
                if current is None:
                    raise NotFoundError(f"File {file_id} not found")
                if current[0]:
                    return current[0]

                await session.execute(
                    update(FileORM)
                    .where(*owned_live, FileORM.share_token.is_(None))
                    .values(share_token=generate_share_token(), is_public=True)
                    .execution_options(synchronize_session=False)
                )
                token = (await session.execute(
                    select(FileORM.share_token).where(FileORM.id == file_id)
                )).scalar_one_or_none()
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to issue share token: {e}") from e
        if not token:
            # Файл удалили между SELECT и UPDATE
            raise NotFoundError(f"File {file_id} not found")
        logger.info(f"Issued share token for file {file_id}")
        return token

    async def revoke(self, file_id: UUID, user_id: UUID) -> None:
        """Снимает публичный доступ. Для файла без ссылки - успешный no-op."""
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(
                    update(FileORM)
                    .where(FileORM.id == file_id, FileORM.user_id == user_id, FileORM.is_deleted.is_(False))
                    .values(share_token=None, is_public=False)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"File {file_id} not found")
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to revoke share token: {e}") from e
        logger.info(f"Revoked share link for file {file_id}")

    async def resolve(self, token: str) -> PublicFileView:
        if not token:
            raise NotFoundError("File not found or not shared")
        async with get_session(self._session_factory) as session:
            try:
                orm = (await session.execute(
                    select(FileORM).where(
                        FileORM.share_token == token,
                        FileORM.is_public.is_(True),
                        FileORM.is_deleted.is_(False),
                    )
                )).scalar_one_or_none()
            except SQLAlchemyError as e:
                logger.error(f"Failed to resolve share token: {e}")
                raise DatabaseError(f"Failed to resolve share link: {e}") from e
            if orm is None:
                raise NotFoundError("File not found or not shared")
            return orm.to_public()
