# sensory_drive/repositories/pg_repositoryQuota.py

import logging
from uuid import UUID

from sqlalchemy import select, update, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from sensory_drive.db import UserORM
from sensory_drive.db.base import get_session
from sensory_drive.exceptions import DatabaseError, NotFoundError, QuotaExceededError, InvalidRequestError
from sensory_drive.models.file import StorageStatus

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "Storage limit exceeded. Please upgrade your plan or delete some files."


class QuotaRepository:
    """
    Учет занятого места (users.storage_used).

    Все изменения счетчика - одиночные UPDATE с выражением на стороне БД,
    без чтения-изменения-записи в приложении, поэтому параллельные загрузки
    одного пользователя не теряют обновления.
    """
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _get_usage(self, session: AsyncSession, user_id: UUID) -> tuple[int, int]:
        try:
            row = (await session.execute(
                select(UserORM.storage_used, UserORM.storage_limit).where(UserORM.id == user_id)
            )).one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read storage usage for user {user_id}: {e}")
            raise DatabaseError(f"Failed to read storage usage: {e}") from e
        if row is None:
            raise NotFoundError(f"User {user_id} not found")
        return row[0], row[1]

    async def check_admission(self, user_id: UUID, size: int) -> None:
        """Предварительная проверка: влезет ли файл размера size. Ничего не резервирует."""
        async with get_session(self._session_factory) as session:
            used, limit = await self._get_usage(session, user_id)
        if used + size > limit:
            logger.info(f"Quota admission denied for user {user_id}: {used} + {size} > {limit}")
            raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)

    async def charge(self, user_id: UUID, size: int, enforce_limit: bool = True) -> int:
        """
        Атомарно увеличивает storage_used на size и возвращает новое значение.
        При enforce_limit условие `storage_used + size <= storage_limit` входит в WHERE:
        если строка не обновилась, пользователь либо не найден, либо квота исчерпана.
        """
        if size < 0:
            raise InvalidRequestError("Size must be non-negative")
        stmt = (
            update(UserORM)
            .where(UserORM.id == user_id)
            .values(storage_used=UserORM.storage_used + size)
            .execution_options(synchronize_session=False)
        )
        if enforce_limit:
            stmt = stmt.where(UserORM.storage_used + size <= UserORM.storage_limit)
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    await self._get_usage(session, user_id)
                    raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)
                used, _ = await self._get_usage(session, user_id)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to charge {size} bytes to user {user_id}: {e}")
                raise DatabaseError(f"Failed to update storage usage: {e}") from e
        logger.debug(f"Charged {size} bytes to user {user_id}, now {used}")
        return used

    async def release(self, user_id: UUID, size: int) -> None:
        """Атомарно уменьшает storage_used на size, не опускаясь ниже нуля."""
        stmt = (
            update(UserORM)
            .where(UserORM.id == user_id)
            .values(storage_used=case(
                (UserORM.storage_used >= size, UserORM.storage_used - size),
                else_=0,
            ))
            .execution_options(synchronize_session=False)
        )
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to release {size} bytes for user {user_id}: {e}")
                raise DatabaseError(f"Failed to update storage usage: {e}") from e
        logger.debug(f"Released {size} bytes for user {user_id}")

    async def get_status(self, user_id: UUID) -> StorageStatus:
        async with get_session(self._session_factory) as session:
            used, limit = await self._get_usage(session, user_id)
        percentage = (used / limit * 100) if limit > 0 else 0.0
        return StorageStatus(storage_used=used, storage_limit=limit, percentage_used=percentage)

    async def set_limit(self, user_id: UUID, limit: int) -> StorageStatus:
        if limit < 0:
            raise InvalidRequestError("Storage limit must be non-negative")
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(
                    update(UserORM)
                    .where(UserORM.id == user_id)
                    .values(storage_limit=limit)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"User {user_id} not found")
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to set storage limit: {e}") from e
        logger.info(f"Storage limit for user {user_id} set to {limit}")
        return await self.get_status(user_id)
