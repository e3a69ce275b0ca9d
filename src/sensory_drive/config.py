# Файл: src/sensory_drive/config.py

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

GIB = 1024 * 1024 * 1024


# --- 1. Настройки PostgreSQL ---
class PostgresConfig(BaseModel):
    user: str = "postgres"
    password: str = "postgres"
    host: str = "localhost"
    port: int = 5432
    db: str = "drive"
    # Полный DSN, перекрывает поля выше (например, sqlite+aiosqlite для разработки)
    dsn: str | None = None

    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    application_name: str = "sensory_drive"

    def get_pg_dsn(self) -> str:
        """Собирает DSN для SQLAlchemy из полей этого объекта."""
        if self.dsn:
            return self.dsn
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

    @property
    def is_postgres(self) -> bool:
        return self.get_pg_dsn().startswith("postgresql")


# --- 2. Настройки MinIO ---
class MinioConfig(BaseModel):
    endpoint: str = "localhost:9000"
    accesskey: str = "minioadmin"
    secretkey: str = "minioadmin"
    bucket: str = "drive-files"
    secure: bool = False
    verify_certs: bool = True
    # Адрес, по которому блобы доступны клиентам (CDN, обратный прокси).
    # Если не задан, строится из endpoint.
    public_url: str | None = None


# --- 3. Правила жизненного цикла файлов и квот ---
class DriveConfig(BaseModel):
    default_storage_limit: int = 5 * GIB
    max_upload_size: int = 2 * GIB
    presigned_upload_ttl: int = Field(3600, description="seconds")
    recent_days: int = 7
    default_page_size: int = 20
    max_page_size: int = 100
    # База для ссылок вида {public_base_url}/share/{token}
    public_base_url: str | None = None


class AuthConfig(BaseModel):
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24


# --- 4. Явная передача конфигурации в фабрику ---
class DriveClientConfig(BaseModel):
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    drive: DriveConfig = Field(default_factory=DriveConfig)


# --- 5. Settings читает всё из окружения / .env ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    minio: MinioConfig = Field(default_factory=MinioConfig)
    drive: DriveConfig = Field(default_factory=DriveConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)


_cached_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Возвращает синглтон-экземпляр настроек, создавая его при первом вызове.
    Это предотвращает ошибки валидации при импорте.
    """
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = Settings()
    return _cached_settings
