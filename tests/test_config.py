import pytest

from sensory_drive import create_drive_client, DriveClient
from sensory_drive.config import DriveClientConfig, PostgresConfig, Settings, GIB


def test_postgres_dsn_from_fields_and_override():
    config = PostgresConfig(user="u", password="p", host="db", port=6543, db="drive")
    assert config.get_pg_dsn() == "postgresql+asyncpg://u:p@db:6543/drive"
    assert config.is_postgres

    sqlite = PostgresConfig(dsn="sqlite+aiosqlite:///drive.db")
    assert sqlite.get_pg_dsn() == "sqlite+aiosqlite:///drive.db"
    assert not sqlite.is_postgres


def test_settings_read_nested_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("MINIO__BUCKET", "tenant-files")
    monkeypatch.setenv("DRIVE__DEFAULT_STORAGE_LIMIT", str(10 * GIB))
    monkeypatch.setenv("AUTH__SECRET_KEY", "s3cret")

    settings = Settings(_env_file=None)

    assert settings.log_level == "debug"
    assert settings.minio.bucket == "tenant-files"
    assert settings.drive.default_storage_limit == 10 * GIB
    assert settings.drive.max_upload_size == 2 * GIB
    assert settings.auth.secret_key == "s3cret"


@pytest.mark.asyncio
async def test_factory_wires_repositories(tmp_path):
    config = DriveClientConfig(postgres=PostgresConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 'f.db'}"))
    config.drive.recent_days = 3

    client = create_drive_client(config)
    try:
        assert isinstance(client, DriveClient)
        assert client.config.recent_days == 3
        assert client.files._recent_days == 3
        assert client.minio.bucket == "drive-files"
        await client.files.check_connection()
    finally:
        await client.aclose()
