from datetime import datetime
from uuid import UUID, uuid4
from typing import Optional, List
from sqlalchemy import Index, Boolean, BigInteger, String, Text, DateTime, JSON, Uuid, text
from sqlalchemy import Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sensory_drive.db.base import Base, CreatedAt, UpdatedAt
from sensory_drive.db.files.file_tag_orm import FileTagORM
from sensory_drive.models.file import FileType, BlobFile, ExternalRef, PublicFileView, YouTubeData
from sensory_drive.utils.file_types import can_preview, get_file_icon

KIND_BLOB = "blob"
KIND_YOUTUBE = "youtube"


class FileORM(Base):
    __tablename__ = "files"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # Денормализованная ссылка на владельца, без FK
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)

    # 'blob'    - байты в блоб-хранилище, размер учитывается в квоте
    # 'youtube' - внешняя ссылка, size = 0, blob_url хранит URL видео/плейлиста
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=KIND_BLOB, server_default=KIND_BLOB)

    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    original_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[FileType] = mapped_column(
        PgEnum(FileType, name="file_type_enum", native_enum=False, length=16),
        nullable=False,
        server_default=FileType.other.value,
    )

    blob_url: Mapped[str] = mapped_column(String, nullable=False)
    blob_name: Mapped[Optional[str]] = mapped_column(String(1024), unique=True, nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    youtube_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    share_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    # Хранится, но при чтении по ссылке не проверяется
    share_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    uploaded_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    tags: Mapped[List["FileTagORM"]] = relationship(
        "FileTagORM",
        cascade="all, delete-orphan",
        order_by="FileTagORM.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_files_user_id_is_deleted", "user_id", "is_deleted"),
        Index("idx_files_file_type", "file_type"),
        Index("idx_files_uploaded_at", "uploaded_at"),
    )

    @property
    def is_external(self) -> bool:
        return self.kind == KIND_YOUTUBE

    def _presentation(self) -> dict:
        return {
            "icon": get_file_icon(self.file_type),
            "previewable": can_preview(self.file_type, self.mime_type),
        }

    def _common_fields(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "original_name": self.original_name,
            "size": self.size,
            "mime_type": self.mime_type,
            "file_type": self.file_type,
            **self._presentation(),
            "blob_url": self.blob_url,
            "is_deleted": self.is_deleted,
            "deleted_at": self.deleted_at,
            "is_starred": self.is_starred,
            "description": self.description,
            "tags": [t.value for t in self.tags],
            "is_public": self.is_public,
            "share_token": self.share_token,
            "share_expiry": self.share_expiry,
            "uploaded_at": self.uploaded_at,
            "updated_at": self.updated_at,
        }

    def to_pydantic(self) -> BlobFile | ExternalRef:
        """
        Конвертирует строку в вариант FileRecord по полю kind.
        Теги должны быть уже загружены (lazy="selectin").
        """
        data = self._common_fields()
        if self.is_external:
            return ExternalRef.model_validate({
                **data,
                "external_id": self.external_id or "",
                "you_tube_data": YouTubeData.model_validate(self.youtube_data) if self.youtube_data else None,
            })
        return BlobFile.model_validate({**data, "blob_name": self.blob_name})

    def to_public(self) -> PublicFileView:
        return PublicFileView.model_validate({
            "id": self.id,
            "name": self.name,
            "original_name": self.original_name,
            "size": self.size,
            "mime_type": self.mime_type,
            "file_type": self.file_type,
            **self._presentation(),
            "blob_url": self.blob_url,
            "uploaded_at": self.uploaded_at,
            "description": self.description,
            "is_you_tube": self.is_external,
            "you_tube_data": YouTubeData.model_validate(self.youtube_data) if self.youtube_data else None,
        })
