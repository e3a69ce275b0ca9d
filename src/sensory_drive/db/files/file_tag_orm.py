# sensory_drive/db/files/file_tag_orm.py

from __future__ import annotations
from uuid import UUID
from sqlalchemy import String, Integer, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sensory_drive.db.base import Base


class FileTagORM(Base):
    __tablename__ = "file_tags"

    # Составной первичный ключ гарантирует уникальность пары (файл, тег).
    file_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("files.id", ondelete="CASCADE"), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), primary_key=True)
    # Порядок, в котором пользователь указал теги
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
