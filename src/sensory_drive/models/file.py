from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FileType(str, enum.Enum):
    image = "image"
    video = "video"
    pdf = "pdf"
    document = "document"
    other = "other"


class FileFilter(str, enum.Enum):
    all = "all"
    starred = "starred"
    recent = "recent"
    trash = "trash"
    images = "images"
    videos = "videos"
    pdfs = "pdfs"
    docs = "docs"


# Фильтры-категории -> значения file_type
CATEGORY_FILTERS: dict[FileFilter, list[FileType]] = {
    FileFilter.images: [FileType.image],
    FileFilter.videos: [FileType.video],
    FileFilter.pdfs: [FileType.pdf],
    FileFilter.docs: [FileType.document],
}


class CamelModel(BaseModel):
    """Наружу (JSON) отдаём camelCase, внутри работаем со snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class YouTubeData(CamelModel):
    type: Literal["youtube-video", "youtube-playlist"]
    video_id: Optional[str] = None
    playlist_id: Optional[str] = None
    thumbnail: Optional[str] = None


class _FileBase(CamelModel):
    id: UUID
    user_id: UUID
    name: str
    original_name: str
    size: int
    mime_type: str
    file_type: FileType
    icon: str = ""
    previewable: bool = False
    blob_url: str
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    is_starred: bool = False
    description: Optional[str] = None
    tags: List[str] = []
    is_public: bool = False
    share_token: Optional[str] = None
    share_expiry: Optional[datetime] = None
    uploaded_at: datetime
    updated_at: datetime


class BlobFile(_FileBase):
    """Файл, байты которого лежат в блоб-хранилище и учитываются в квоте."""
    kind: Literal["blob"] = "blob"
    blob_name: str
    is_you_tube: Literal[False] = False


class ExternalRef(_FileBase):
    """Ссылка на внешний ресурс (YouTube). Не занимает места и не трогает блобы."""
    kind: Literal["youtube"] = "youtube"
    provider: Literal["youtube"] = "youtube"
    external_id: str
    is_you_tube: Literal[True] = True
    you_tube_data: Optional[YouTubeData] = None

    @property
    def url(self) -> str:
        return self.blob_url


FileRecord = Annotated[Union[BlobFile, ExternalRef], Field(discriminator="kind")]


class PublicFileView(CamelModel):
    """Урезанная проекция для публичной ссылки: без владельца и внутреннего имени блоба."""
    id: UUID
    name: str
    original_name: str
    size: int
    mime_type: str
    file_type: FileType
    icon: str = ""
    previewable: bool = False
    blob_url: str
    uploaded_at: datetime
    description: Optional[str] = None
    is_you_tube: bool = False
    you_tube_data: Optional[YouTubeData] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    has_more: bool


class FilePage(CamelModel):
    files: List[FileRecord]
    pagination: Pagination


class TrashListing(CamelModel):
    files: List[FileRecord]
    count: int


# --- Входные данные операций ---

class UploadTicketRequest(CamelModel):
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None


class UploadTicket(CamelModel):
    sas_url: str
    blob_name: str
    container_url: str
    expires_at: datetime


class UploadRegistration(CamelModel):
    # Все поля обязательны, но проверяются в DriveClient, чтобы ответ был InvalidRequest
    file_name: Optional[str] = None
    original_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    blob_name: Optional[str] = None
    blob_url: Optional[str] = None


class YouTubeCreate(CamelModel):
    type: Optional[Literal["youtube-video", "youtube-playlist"]] = None
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_id: Optional[str] = None
    playlist_id: Optional[str] = None


class FileRename(CamelModel):
    name: Optional[str] = None


class FileDetailsUpdate(CamelModel):
    description: Optional[str] = None
    tags: Optional[List[str]] = None


class ShareLink(CamelModel):
    share_url: str
    share_token: str


class StorageStatus(CamelModel):
    storage_used: int
    storage_limit: int
    percentage_used: float
