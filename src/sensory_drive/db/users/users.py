from __future__ import annotations
from uuid import UUID, uuid4

from sqlalchemy import String, Boolean, BigInteger, CheckConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAt, UpdatedAt

DEFAULT_STORAGE_LIMIT = 5 * 1024 * 1024 * 1024


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # Хранится в нижнем регистре: уникальность email регистронезависимая
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    # Счётчик квоты. Меняется только атомарными UPDATE из QuotaRepository.
    storage_used: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    storage_limit: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=DEFAULT_STORAGE_LIMIT, server_default=str(DEFAULT_STORAGE_LIMIT)
    )

    __table_args__ = (
        CheckConstraint("storage_used >= 0", name="storage_used_nonnegative"),
    )
