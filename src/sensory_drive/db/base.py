from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Annotated
from datetime import datetime, timezone

from sqlalchemy import MetaData, func, DateTime
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


# Время ставится на стороне приложения: порядок uploaded_at DESC должен различать
# файлы, загруженные в одну секунду (server_default у SQLite секундный).
CreatedAt = Annotated[datetime, mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())]
UpdatedAt = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow),
]


@asynccontextmanager
async def get_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
