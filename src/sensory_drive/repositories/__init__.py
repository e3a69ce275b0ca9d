from .minio_repository import MinioRepository, StoredBlob
from .pg_repositoryFile import FileRepository
from .pg_repositoryShare import ShareRepository
from .pg_repositoryQuota import QuotaRepository
from .pg_repositoryUser import UserRepository

__all__ = [
    "MinioRepository",
    "StoredBlob",
    "FileRepository",
    "ShareRepository",
    "QuotaRepository",
    "UserRepository",
]
