# src/sensory_drive/repositories/pg_repositoryUser.py

import logging
from uuid import UUID
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from passlib.context import CryptContext

from sensory_drive.db import UserORM
from sensory_drive.db.base import get_session
from sensory_drive.exceptions import ConflictError, DatabaseError, InvalidRequestError
from sensory_drive.models.user import UserInDB

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Создает хеш из обычного пароля."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], default_storage_limit: int | None = None):
        self._session_factory = session_factory
        self._default_storage_limit = default_storage_limit

    async def create_user(self, email: str, name: str, plain_password: str) -> UserInDB:
        """
        Регистрирует пользователя. Email сравнивается без учета регистра.
        Квота берется из DriveConfig.default_storage_limit.
        """
        email = normalize_email(email)
        name = name.strip()
        if not email or "@" not in email:
            raise InvalidRequestError("A valid email is required")
        if not name:
            raise InvalidRequestError("Name is required")

        user = UserORM(email=email, name=name, hashed_password=get_password_hash(plain_password))
        if self._default_storage_limit is not None:
            user.storage_limit = self._default_storage_limit
        async with get_session(self._session_factory) as session:
            try:
                session.add(user)
                await session.commit()
                await session.refresh(user)
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"User with email {email} already exists.") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to create user: {e}") from e
        logger.info(f"Registered user {user.id}")
        return UserInDB.model_validate(user)

    async def _find_one(self, stmt) -> Optional[UserORM]:
        async with get_session(self._session_factory) as session:
            try:
                return (await session.execute(stmt)).scalar_one_or_none()
            except SQLAlchemyError as e:
                logger.error(f"Failed to load user: {e}")
                raise DatabaseError(f"Failed to load user: {e}") from e

    async def get_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        """Находит пользователя по его UUID."""
        user = await self._find_one(select(UserORM).where(UserORM.id == user_id))
        return UserInDB.model_validate(user) if user else None

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        user = await self._find_one(select(UserORM).where(UserORM.email == normalize_email(email)))
        return UserInDB.model_validate(user) if user else None

    async def authenticate(self, email: str, plain_password: str) -> Optional[UserInDB]:
        """None при неверной паре email/пароль или неактивном пользователе."""
        user = await self._find_one(select(UserORM).where(UserORM.email == normalize_email(email)))
        if user is None or not user.is_active:
            return None
        if not verify_password(plain_password, user.hashed_password):
            return None
        return UserInDB.model_validate(user)
