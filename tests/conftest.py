import pytest
import pytest_asyncio
import httpx
from datetime import timedelta
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

# Base для создания таблиц в тестовой БД
from sensory_drive.db.base import Base
from sensory_drive.client import DriveClient
from sensory_drive.config import DriveConfig, PostgresConfig
from sensory_drive.exceptions import MinioError
from sensory_drive.repositories import (
    FileRepository,
    ShareRepository,
    QuotaRepository,
    UserRepository,
    StoredBlob,
)
from sensory_drive.server.auth import create_access_token
from sensory_drive.server.main import create_app


class InMemoryBlobStore:
    """
    Замена MinioRepository в тестах: тот же интерфейс, объекты живут в словаре.
    fail_uploads / fail_deletes имитируют сбой провайдера.
    """

    def __init__(self, base_url: str = "http://blobs.test", bucket: str = "drive-files"):
        self.objects: dict[str, bytes] = {}
        self.bucket = bucket
        self.container_url = f"{base_url}/{bucket}"
        self.fail_uploads = False
        self.fail_deletes = False
        self.presigned: list[tuple[str, timedelta]] = []

    def object_url(self, blob_name: str) -> str:
        return f"{self.container_url}/{blob_name}"

    async def check_connection(self):
        return None

    async def upload(self, data: bytes, blob_name: str, mime_type: str | None = None) -> StoredBlob:
        if self.fail_uploads:
            raise MinioError("upload refused")
        self.objects[blob_name] = data
        return StoredBlob(url=self.object_url(blob_name), blob_name=blob_name)

    async def exists(self, blob_name: str) -> bool:
        return blob_name in self.objects

    async def delete(self, blob_name: str) -> bool:
        if self.fail_deletes:
            raise MinioError("delete refused")
        return self.objects.pop(blob_name, None) is not None

    async def issue_presigned_upload(self, blob_name: str, ttl: timedelta) -> str:
        self.presigned.append((blob_name, ttl))
        return f"{self.object_url(blob_name)}?X-Amz-Signature=test"

    def put(self, blob_name: str, data: bytes = b"") -> None:
        """Имитирует PUT клиента по presigned-ссылке."""
        self.objects[blob_name] = data


def sqlite_config(tmp_path) -> PostgresConfig:
    return PostgresConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 'drive.db'}")


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """
    Отдельная SQLite-база на каждый тест: таблицы создаются заново,
    после теста файл просто исчезает вместе с tmp_path.
    """
    engine = create_async_engine(sqlite_config(tmp_path).get_pg_dsn())
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, expire_on_commit=False)


async def drop_tables(engine, *orm_classes) -> None:
    """Удаляет таблицы посреди теста, чтобы следующие запросы к ним падали."""
    tables = [cls.__table__ for cls in orm_classes]
    async with engine.begin() as conn:
        await conn.run_sync(lambda sync_conn: Base.metadata.drop_all(sync_conn, tables=tables))


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def drive_config() -> DriveConfig:
    return DriveConfig()


@pytest.fixture
def drive_client(session_factory, blob_store, drive_config) -> DriveClient:
    """DriveClient, собранный так же, как в create_drive_client, но с хранилищем в памяти."""
    return DriveClient(
        file_repo=FileRepository(session_factory, recent_days=drive_config.recent_days),
        share_repo=ShareRepository(session_factory),
        quota_repo=QuotaRepository(session_factory),
        user_repo=UserRepository(session_factory, default_storage_limit=drive_config.default_storage_limit),
        minio_repo=blob_store,
        drive_config=drive_config,
    )


@pytest_asyncio.fixture
async def user(drive_client):
    return await drive_client.register_user("alice@example.com", "Alice", "password123")


@pytest_asyncio.fixture
async def other_user(drive_client):
    return await drive_client.register_user("bob@example.com", "Bob", "password123")


@pytest_asyncio.fixture
async def api(drive_client):
    """HTTP-клиент поверх ASGI-приложения без сети и без lifespan."""
    app = create_app(drive_client)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


async def upload(client: DriveClient, owner, name: str = "report.pdf", content: bytes = b"%PDF-1.4 data",
                 mime_type: str = "application/pdf"):
    return await client.upload_file(owner.id, name, content, mime_type)
