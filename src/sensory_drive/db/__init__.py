# sensory_drive/db/__init__.py

from .base import Base

from .users.users import UserORM

# таблицы файлов
from .files.file_tag_orm import FileTagORM
from .files.file_orm import FileORM, KIND_BLOB, KIND_YOUTUBE


__all__ = [
    "Base",
    "UserORM",
    "FileORM",
    "FileTagORM",
    "KIND_BLOB",
    "KIND_YOUTUBE",
]
