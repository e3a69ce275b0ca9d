import logging
import time
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sensory_drive.config import DriveConfig
from sensory_drive.repositories import (
    MinioRepository,
    FileRepository,
    ShareRepository,
    QuotaRepository,
    UserRepository,
)
from sensory_drive.db import FileORM, KIND_BLOB, KIND_YOUTUBE
from sensory_drive.models import (
    BlobFile, ExternalRef, FileFilter, FilePage, TrashListing, UploadTicket, UploadRegistration,
    YouTubeCreate, ShareLink, StorageStatus, PublicFileView, FileType, UserInDB,
)
from sensory_drive.exceptions import (
    DatabaseError, StorageError, InvalidRequestError, VerificationFailedError, ConflictError, NotFoundError,
)
from sensory_drive.utils.file_types import classify, generate_unique_filename

logger = logging.getLogger(__name__)

YOUTUBE_MIME_TYPES = {
    "youtube-video": "video/youtube",
    "youtube-playlist": "application/x-youtube-playlist",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


class DriveClient:
    """
    Единая точка доступа для бизнес-логики: загрузка (через сервер и напрямую
    в хранилище), корзина, квота и публичные ссылки.
    Личность вызывающего (user_id) передается явно в каждый метод.
    """

    def __init__(
        self,
        file_repo: FileRepository,
        share_repo: ShareRepository,
        quota_repo: QuotaRepository,
        user_repo: UserRepository,
        minio_repo: MinioRepository,
        drive_config: DriveConfig | None = None,
    ):
        self.files = file_repo
        self.shares = share_repo
        self.quota = quota_repo
        self.users = user_repo
        self.minio = minio_repo
        self.config = drive_config or DriveConfig()

    async def check_connections(self) -> dict[str, str]:
        """
        Проверяет доступность внешних сервисов (БД, MinIO).
        Возвращает словарь со статусами.
        """
        statuses = {}
        try:
            await self.files.check_connection()
            statuses["postgres"] = "ok"
        except DatabaseError as e:
            statuses["postgres"] = f"failed: {e}"

        try:
            await self.minio.check_connection()
            statuses["minio"] = "ok"
        except StorageError as e:
            statuses["minio"] = f"failed: {e}"
        return statuses

    # ――― users ――― #

    async def register_user(self, email: str, name: str, password: str) -> UserInDB:
        return await self.users.create_user(email, name, password)

    async def authenticate(self, email: str, password: str) -> UserInDB | None:
        return await self.users.authenticate(email, password)

    # ――― upload ――― #

    def _check_size(self, size: int) -> None:
        if size > self.config.max_upload_size:
            raise InvalidRequestError("File too large. Maximum size is 2GB.")

    async def upload_file(self, user_id: UUID, file_name: str, content: bytes, mime_type: str | None) -> BlobFile:
        """
        Загрузка через сервер: байты уже в памяти.

        1. Резервируем место в квоте (атомарно, с проверкой лимита).
        2. Кладем блоб в MinIO.
        3. Создаем запись о файле.
        При сбое на шагах 2-3 резерв возвращается, запись не создается.
        """
        if not file_name or not file_name.strip():
            raise InvalidRequestError("No file provided")
        size = len(content)
        self._check_size(size)
        mime_type = mime_type or "application/octet-stream"

        await self.quota.charge(user_id, size)

        blob_name = f"{_now_ms()}-{generate_unique_filename(file_name)}"
        try:
            stored = await self.minio.upload(content, blob_name, mime_type)
        except Exception:
            logger.error(f"Blob upload failed for user {user_id}, releasing {size} reserved bytes")
            await self.quota.release(user_id, size)
            raise

        try:
            record = await self.files.create(FileORM(
                user_id=user_id,
                kind=KIND_BLOB,
                name=file_name,
                original_name=file_name,
                size=size,
                mime_type=mime_type,
                file_type=classify(mime_type),
                blob_url=stored.url,
                blob_name=stored.blob_name,
            ))
        except (DatabaseError, ConflictError):
            logger.error(f"Saving metadata failed for blob '{blob_name}'. Rolling back upload.")
            await self.quota.release(user_id, size)
            await self._delete_blob_quietly(blob_name)
            raise

        logger.info(f"User {user_id} uploaded '{file_name}' ({size} bytes) as {record.id}")
        return record

    async def request_upload_url(
        self,
        user_id: UUID,
        file_name: str | None,
        file_size: int | None,
        mime_type: str | None,
    ) -> UploadTicket:
        """
        Выдает presigned PUT для прямой загрузки в хранилище.
        Проверка квоты здесь предварительная: место не резервируется.
        """
        if not file_name or not file_size or not mime_type:
            raise InvalidRequestError("Missing required fields: fileName, fileSize, mimeType")
        if file_size < 0:
            raise InvalidRequestError("fileSize must be positive")
        self._check_size(file_size)

        await self.quota.check_admission(user_id, file_size)

        blob_name = f"{user_id}/{_now_ms()}-{generate_unique_filename(file_name)}"
        ttl = timedelta(seconds=self.config.presigned_upload_ttl)
        sas_url = await self.minio.issue_presigned_upload(blob_name, ttl)
        logger.info(f"Issued direct upload URL for user {user_id}: {blob_name}")
        return UploadTicket(
            sas_url=sas_url,
            blob_name=blob_name,
            container_url=self.minio.container_url,
            expires_at=datetime.now(timezone.utc) + ttl,
        )

    async def register_upload(self, user_id: UUID, payload: UploadRegistration) -> BlobFile:
        """
        Завершает прямую загрузку: проверяет, что блоб действительно лежит в хранилище,
        создает запись и списывает квоту. Лимит здесь повторно не проверяется.
        Если списать не удалось, запись удаляется.
        """
        required = ("file_name", "original_name", "file_size", "mime_type", "blob_name", "blob_url")
        if any(not getattr(payload, f) for f in required):
            raise InvalidRequestError("Missing required fields")
        if payload.file_size < 0:
            raise InvalidRequestError("fileSize must be positive")

        # Клиент может регистрировать только объекты под своим префиксом
        if not payload.blob_name.startswith(f"{user_id}/"):
            raise VerificationFailedError("File upload verification failed")
        if not await self.minio.exists(payload.blob_name):
            raise VerificationFailedError("File upload verification failed")

        record = await self.files.create(FileORM(
            user_id=user_id,
            kind=KIND_BLOB,
            name=payload.original_name,
            original_name=payload.original_name,
            size=payload.file_size,
            mime_type=payload.mime_type,
            file_type=classify(payload.mime_type),
            blob_url=self.minio.object_url(payload.blob_name),
            blob_name=payload.blob_name,
        ))
        try:
            await self.quota.charge(user_id, payload.file_size, enforce_limit=False)
        except Exception:
            logger.error(f"Charging direct upload {record.id} failed, discarding the record")
            await self.files.discard(record.id, user_id)
            raise
        logger.info(f"User {user_id} registered direct upload {record.id} ({payload.file_size} bytes)")
        return record

    async def add_youtube(self, user_id: UUID, payload: YouTubeCreate) -> ExternalRef:
        """Добавляет ссылку на видео/плейлист YouTube. Квоту не затрагивает."""
        if not payload.type or not payload.url or not payload.title:
            raise InvalidRequestError("Missing required fields")
        if await self.files.find_live_by_url(user_id, payload.url):
            raise ConflictError("This YouTube video is already in your drive")

        is_playlist = payload.type == "youtube-playlist"
        record = await self.files.create(
            FileORM(
                user_id=user_id,
                kind=KIND_YOUTUBE,
                name=payload.title,
                original_name=payload.title,
                size=0,
                mime_type=YOUTUBE_MIME_TYPES[payload.type],
                file_type=FileType.video,
                blob_url=payload.url,
                blob_name=None,
                external_id=payload.video_id or payload.playlist_id or f"youtube-{_now_ms()}",
                description=payload.description,
                youtube_data={
                    "type": payload.type,
                    "videoId": payload.video_id,
                    "playlistId": payload.playlist_id,
                    "thumbnail": payload.thumbnail,
                },
            ),
            tags=["youtube", "playlist" if is_playlist else "video"],
        )
        logger.info(f"User {user_id} added YouTube reference {record.id}")
        return record

    # ――― listing ――― #

    async def list_files(
        self,
        user_id: UUID,
        file_filter: FileFilter | str = FileFilter.all,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> FilePage:
        try:
            file_filter = FileFilter(file_filter)
        except ValueError:
            raise InvalidRequestError(f"Unknown filter: {file_filter}")
        limit = self.config.default_page_size if limit is None else limit
        if page < 1 or limit < 1 or limit > self.config.max_page_size:
            raise InvalidRequestError("Invalid pagination parameters")
        return await self.files.list_files(user_id, file_filter, search, page, limit)

    async def list_trash(self, user_id: UUID) -> TrashListing:
        return await self.files.list_trash(user_id)

    # ――― mutations ――― #

    async def rename_file(self, file_id: UUID, user_id: UUID, new_name: str | None) -> BlobFile | ExternalRef:
        name = (new_name or "").strip()
        if not name:
            raise InvalidRequestError("File name cannot be empty")
        return await self.files.rename(file_id, user_id, name)

    async def toggle_star(self, file_id: UUID, user_id: UUID) -> bool:
        return await self.files.toggle_star(file_id, user_id)

    async def update_details(
        self,
        file_id: UUID,
        user_id: UUID,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> BlobFile | ExternalRef:
        return await self.files.update_details(file_id, user_id, description, tags)

    async def delete_file(self, file_id: UUID, user_id: UUID) -> None:
        """Мягкое удаление: файл уходит в корзину, место в квоте остается занятым."""
        await self.files.soft_delete(file_id, user_id)
        logger.info(f"File {file_id} moved to trash")

    async def restore_file(self, file_id: UUID, user_id: UUID) -> None:
        await self.files.restore(file_id, user_id)
        logger.info(f"File {file_id} restored from trash")

    async def permanently_delete_file(self, file_id: UUID, user_id: UUID) -> None:
        """
        Окончательное удаление файла из корзины.
        Сначала удаляется документ: квоту освобождает только тот запрос, который его удалил.
        Сбой удаления блоба логируется и не мешает удалению (осиротевший блоб допустим).
        """
        record = await self.files.delete_trashed(file_id, user_id)
        if isinstance(record, BlobFile):
            await self._delete_blob_quietly(record.blob_name)
            await self.quota.release(user_id, record.size)
        logger.info(f"File {file_id} permanently deleted")

    async def _delete_blob_quietly(self, blob_name: str) -> bool:
        try:
            deleted = await self.minio.delete(blob_name)
            if not deleted:
                logger.warning(f"Blob '{blob_name}' was already absent")
            return deleted
        except StorageError as e:
            logger.error(f"Error deleting blob '{blob_name}' from storage: {e}")
            return False

    # ――― sharing ――― #

    async def create_share_link(self, file_id: UUID, user_id: UUID, base_url: str | None = None) -> ShareLink:
        token = await self.shares.ensure_share_token(file_id, user_id)
        base = (self.config.public_base_url or base_url or "").rstrip("/")
        return ShareLink(share_url=f"{base}/share/{token}", share_token=token)

    async def revoke_share_link(self, file_id: UUID, user_id: UUID) -> None:
        await self.shares.revoke(file_id, user_id)

    async def get_shared_file(self, token: str) -> PublicFileView:
        return await self.shares.resolve(token)

    # ――― quota ――― #

    async def get_storage_status(self, user_id: UUID) -> StorageStatus:
        return await self.quota.get_status(user_id)

    async def set_storage_limit(self, email: str, limit: int) -> StorageStatus:
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError(f"User {email} not found")
        return await self.quota.set_limit(user.id, limit)
