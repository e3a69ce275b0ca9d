import logging
from datetime import timedelta
from io import BytesIO
from typing import NamedTuple
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import S3Error

from sensory_drive.config import MinioConfig
from sensory_drive.exceptions import MinioError
from sensory_drive.utils.minio_async import run_io_bound

logger = logging.getLogger(__name__)

# Коды S3, которые означают "объекта нет", а не сбой провайдера
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchObject", "NoSuchBucket", "ResourceNotFound"})
_PROVIDER_ERRORS = (S3Error, urllib3.exceptions.HTTPError)


class StoredBlob(NamedTuple):
    url: str
    blob_name: str


class MinioRepository:
    """Блоб-адаптер: загрузка, удаление, проверка существования и presigned PUT."""

    def __init__(self, settings: MinioConfig):
        http_client = None
        if settings.secure and not settings.verify_certs:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            http_client = urllib3.PoolManager(cert_reqs="CERT_NONE")
        self._client = Minio(
            endpoint=settings.endpoint,
            access_key=settings.accesskey,
            secret_key=settings.secretkey,
            secure=settings.secure,
            http_client=http_client,
        )
        self._bucket = settings.bucket
        scheme = "https" if settings.secure else "http"
        self._public_base = (settings.public_url or f"{scheme}://{settings.endpoint}").rstrip("/")
        self._bucket_ready = False

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def container_url(self) -> str:
        return f"{self._public_base}/{self._bucket}"

    def object_url(self, blob_name: str) -> str:
        return f"{self.container_url}/{quote(blob_name)}"

    async def _ensure_bucket(self):
        if self._bucket_ready:
            return
        try:
            exists = await run_io_bound(self._client.bucket_exists, self._bucket)
            if not exists:
                await run_io_bound(self._client.make_bucket, self._bucket)
                logger.info(f"Created bucket '{self._bucket}'")
        except S3Error as e:
            # Бакет мог создать параллельный запрос
            if e.code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise MinioError(str(e)) from e
        except urllib3.exceptions.HTTPError as e:
            raise MinioError(str(e)) from e
        self._bucket_ready = True

    async def check_connection(self):
        """Проверяет соединение с MinIO и наличие бакета."""
        logger.debug(f"Checking MinIO connection and bucket '{self._bucket}' existence...")
        try:
            await self._ensure_bucket()
            logger.debug("MinIO connection and bucket presence confirmed.")
        except MinioError as e:
            logger.error(f"MinIO connection failed: {e}")
            raise

    async def upload(self, data: bytes, blob_name: str, mime_type: str | None = None) -> StoredBlob:
        await self._ensure_bucket()
        try:
            await run_io_bound(
                self._client.put_object,
                self._bucket,
                blob_name,
                BytesIO(data),
                len(data),
                content_type=mime_type or "application/octet-stream",
            )
        except _PROVIDER_ERRORS as e:
            raise MinioError(str(e)) from e
        logger.info(f"Stored blob '{blob_name}' ({len(data)} bytes)")
        return StoredBlob(url=self.object_url(blob_name), blob_name=blob_name)

    async def exists(self, blob_name: str) -> bool:
        try:
            await run_io_bound(self._client.stat_object, self._bucket, blob_name)
            return True
        except S3Error as e:
            if e.code in _NOT_FOUND_CODES:
                return False
            raise MinioError(str(e)) from e
        except urllib3.exceptions.HTTPError as e:
            raise MinioError(str(e)) from e

    async def delete(self, blob_name: str) -> bool:
        """
        Удаляет объект. False, если его уже не было.
        S3 не сообщает об отсутствии объекта при удалении, поэтому сначала stat.
        """
        if not await self.exists(blob_name):
            return False
        try:
            await run_io_bound(self._client.remove_object, self._bucket, blob_name)
        except _PROVIDER_ERRORS as e:
            raise MinioError(str(e)) from e
        return True

    async def issue_presigned_upload(self, blob_name: str, ttl: timedelta) -> str:
        """Временная ссылка только на запись (PUT) одного объекта."""
        await self._ensure_bucket()
        try:
            return await run_io_bound(
                self._client.presigned_put_object,
                self._bucket,
                blob_name,
                expires=ttl,
            )
        except _PROVIDER_ERRORS as e:
            raise MinioError(str(e)) from e
