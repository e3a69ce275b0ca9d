import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update, func, exists, or_, not_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sensory_drive.db import FileORM, FileTagORM
from sensory_drive.db.base import get_session, utcnow
from sensory_drive.exceptions import ConflictError, DatabaseError, NotFoundError
from sensory_drive.models.file import (
    BlobFile, ExternalRef, CATEGORY_FILTERS, FileFilter, FilePage, Pagination, TrashListing,
)

logger = logging.getLogger(__name__)


def normalize_tags(tags: Iterable[str] | None) -> List[str]:
    """Обрезает пробелы, выкидывает пустые и повторы, сохраняя порядок."""
    out: list[str] = []
    seen: set[str] = set()
    for t in tags or []:
        if not isinstance(t, str):
            continue
        x = t.strip()
        if x and x not in seen:
            seen.add(x)
            out.append(x)
    return out


def _like_pattern(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_file_conditions(
    user_id: UUID,
    file_filter: FileFilter = FileFilter.all,
    search: str | None = None,
    now: datetime | None = None,
    recent_days: int = 7,
) -> list:
    """
    Предикаты листинга. Владелец входит всегда; только фильтр trash
    переворачивает условие is_deleted, все остальные видят лишь живые файлы.
    """
    conds = [FileORM.user_id == user_id]

    if file_filter == FileFilter.trash:
        conds.append(FileORM.is_deleted.is_(True))
    else:
        conds.append(FileORM.is_deleted.is_(False))

    if file_filter == FileFilter.starred:
        conds.append(FileORM.is_starred.is_(True))
    elif file_filter == FileFilter.recent:
        since = (now or utcnow()) - timedelta(days=recent_days)
        conds.append(FileORM.uploaded_at >= since)
    elif file_filter in CATEGORY_FILTERS:
        conds.append(FileORM.file_type.in_(CATEGORY_FILTERS[file_filter]))

    if search and search.strip():
        pattern = _like_pattern(search.strip())
        tag_match = exists().where(
            FileTagORM.file_id == FileORM.id,
            FileTagORM.value.ilike(pattern, escape="\\"),
        )
        conds.append(or_(
            FileORM.name.ilike(pattern, escape="\\"),
            FileORM.original_name.ilike(pattern, escape="\\"),
            FileORM.description.ilike(pattern, escape="\\"),
            tag_match,
        ))
    return conds


def _owned(file_id: UUID, user_id: UUID, deleted: bool) -> list:
    # Проверка владельца - часть предиката: чужой файл неотличим от отсутствующего
    return [FileORM.id == file_id, FileORM.user_id == user_id, FileORM.is_deleted.is_(deleted)]


class FileRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], recent_days: int = 7):
        self._session_factory = session_factory
        self._recent_days = recent_days

    async def check_connection(self):
        """Проверяет соединение с базой данных, выполняя простой запрос."""
        logger.debug("Checking database connection...")
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(text("SELECT 1"))
                logger.debug("Database connection successful.")
            except SQLAlchemyError as e:
                logger.error(f"Database connection failed: {e}")
                raise DatabaseError("Failed to connect to the database.") from e

    async def create(self, file: FileORM, tags: Iterable[str] | None = None) -> BlobFile | ExternalRef:
        file.tags = [FileTagORM(value=v, position=i) for i, v in enumerate(normalize_tags(tags))]
        async with get_session(self._session_factory) as session:
            try:
                session.add(file)
                await session.commit()
                await session.refresh(file, attribute_names=["tags"])
                return file.to_pydantic()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"File with blob name {file.blob_name!r} already exists") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to save file metadata: {e}") from e

    async def get_owned(self, file_id: UUID, user_id: UUID, deleted: bool = False) -> Optional[BlobFile | ExternalRef]:
        async with get_session(self._session_factory) as session:
            try:
                res = await session.execute(select(FileORM).where(*_owned(file_id, user_id, deleted)))
                orm = res.scalar_one_or_none()
                return orm.to_pydantic() if orm else None
            except SQLAlchemyError as e:
                logger.error(f"Failed to fetch file {file_id}: {e}")
                raise DatabaseError(f"Failed to fetch file: {e}") from e

    async def find_live_by_url(self, user_id: UUID, url: str) -> Optional[BlobFile | ExternalRef]:
        async with get_session(self._session_factory) as session:
            stmt = select(FileORM).where(
                FileORM.user_id == user_id,
                FileORM.blob_url == url,
                FileORM.is_deleted.is_(False),
            ).limit(1)
            try:
                orm = (await session.execute(stmt)).scalar_one_or_none()
                return orm.to_pydantic() if orm else None
            except SQLAlchemyError as e:
                raise DatabaseError(f"Failed to look up file by url: {e}") from e

    async def list_files(
        self,
        user_id: UUID,
        file_filter: FileFilter = FileFilter.all,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> FilePage:
        conds = build_file_conditions(user_id, file_filter, search, recent_days=self._recent_days)
        skip = (page - 1) * limit
        q = (
            select(FileORM)
            .where(*conds)
            .order_by(FileORM.uploaded_at.desc(), FileORM.id.desc())
            .offset(skip)
            .limit(limit)
        )
        async with get_session(self._session_factory) as session:
            try:
                total = (await session.execute(
                    select(func.count()).select_from(FileORM).where(*conds)
                )).scalar_one()
                orms = (await session.execute(q)).scalars().all()
                files = [o.to_pydantic() for o in orms]
            except SQLAlchemyError as e:
                logger.error(f"Failed to list files for user {user_id}: {e}")
                raise DatabaseError(f"Failed to list files: {e}") from e

        return FilePage(
            files=files,
            pagination=Pagination(
                page=page,
                limit=limit,
                total_count=total,
                total_pages=math.ceil(total / limit),
                has_more=skip + len(files) < total,
            ),
        )

    async def list_trash(self, user_id: UUID) -> TrashListing:
        q = (
            select(FileORM)
            .where(FileORM.user_id == user_id, FileORM.is_deleted.is_(True))
            .order_by(FileORM.deleted_at.desc())
        )
        async with get_session(self._session_factory) as session:
            try:
                files = [o.to_pydantic() for o in (await session.execute(q)).scalars().all()]
            except SQLAlchemyError as e:
                logger.error(f"Failed to list trash for user {user_id}: {e}")
                raise DatabaseError(f"Failed to list trash: {e}") from e
        return TrashListing(files=files, count=len(files))

    async def _update_owned(self, file_id: UUID, user_id: UUID, deleted: bool, **values) -> BlobFile | ExternalRef:
        """Один UPDATE по (id, владелец, is_deleted); 0 строк -> NotFoundError."""
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(
                    update(FileORM)
                    .where(*_owned(file_id, user_id, deleted))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"File {file_id} not found")
                orm = (await session.execute(
                    select(FileORM).where(FileORM.id == file_id).execution_options(populate_existing=True)
                )).scalar_one()
                record = orm.to_pydantic()
                await session.commit()
                return record
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to update file {file_id}: {e}")
                raise DatabaseError(f"Failed to update file: {e}") from e

    async def rename(self, file_id: UUID, user_id: UUID, new_name: str) -> BlobFile | ExternalRef:
        return await self._update_owned(file_id, user_id, False, name=new_name)

    async def toggle_star(self, file_id: UUID, user_id: UUID) -> bool:
        record = await self._update_owned(file_id, user_id, False, is_starred=not_(FileORM.is_starred))
        return record.is_starred

    async def soft_delete(self, file_id: UUID, user_id: UUID) -> BlobFile | ExternalRef:
        return await self._update_owned(file_id, user_id, False, is_deleted=True, deleted_at=utcnow())

    async def restore(self, file_id: UUID, user_id: UUID) -> BlobFile | ExternalRef:
        return await self._update_owned(file_id, user_id, True, is_deleted=False, deleted_at=None)

    async def update_details(
        self,
        file_id: UUID,
        user_id: UUID,
        description: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> BlobFile | ExternalRef:
        """Меняет описание и/или целиком заменяет набор тегов живого файла."""
        async with get_session(self._session_factory) as session:
            try:
                orm = (await session.execute(
                    select(FileORM).where(*_owned(file_id, user_id, False))
                )).scalar_one_or_none()
                if orm is None:
                    raise NotFoundError(f"File {file_id} not found")
                if description is not None:
                    orm.description = description.strip() or None
                if tags is not None:
                    existing = {t.value: t for t in orm.tags}
                    new_tags = []
                    for i, value in enumerate(normalize_tags(tags)):
                        tag = existing.get(value) or FileTagORM(value=value)
                        tag.position = i
                        new_tags.append(tag)
                    orm.tags = new_tags
                orm.updated_at = utcnow()
                await session.commit()
                await session.refresh(orm, attribute_names=["tags"])
                return orm.to_pydantic()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to update file details: {e}") from e

    async def delete_trashed(self, file_id: UUID, user_id: UUID) -> BlobFile | ExternalRef:
        """
        Удаляет документ, который лежит в корзине, и возвращает его последнее состояние.
        Живой файл удалить нельзя: сначала soft_delete.
        """
        async with get_session(self._session_factory) as session:
            try:
                orm = (await session.execute(
                    select(FileORM).where(*_owned(file_id, user_id, True)).with_for_update()
                )).scalar_one_or_none()
                if orm is None:
                    raise NotFoundError(f"File {file_id} not found in trash")
                record = orm.to_pydantic()
                await session.delete(orm)
                await session.commit()
                return record
            except StaleDataError as e:
                # Параллельный запрос успел удалить ту же строку
                await session.rollback()
                raise NotFoundError(f"File {file_id} not found in trash") from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to delete file: {e}") from e

    async def discard(self, file_id: UUID, user_id: UUID) -> bool:
        """Удаляет запись без проверки корзины. Откат регистрации, которую не удалось оплатить."""
        async with get_session(self._session_factory) as session:
            try:
                orm = (await session.execute(
                    select(FileORM).where(FileORM.id == file_id, FileORM.user_id == user_id)
                )).scalar_one_or_none()
                if orm is None:
                    return False
                await session.delete(orm)
                await session.commit()
                return True
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to discard file {file_id}: {e}")
                raise DatabaseError(f"Failed to discard file: {e}") from e
