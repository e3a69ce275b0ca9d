from .file import (
    FileType, FileFilter, CATEGORY_FILTERS, YouTubeData, BlobFile, ExternalRef, FileRecord,
    PublicFileView, Pagination, FilePage, TrashListing, UploadTicketRequest, UploadTicket,
    UploadRegistration, YouTubeCreate, FileRename, FileDetailsUpdate, ShareLink, StorageStatus,
)
from .user import UserCreate, UserInDB, Identity

__all__ = [
    "FileType", "FileFilter", "CATEGORY_FILTERS", "YouTubeData", "BlobFile", "ExternalRef", "FileRecord",
    "PublicFileView", "Pagination", "FilePage", "TrashListing", "UploadTicketRequest", "UploadTicket",
    "UploadRegistration", "YouTubeCreate", "FileRename", "FileDetailsUpdate", "ShareLink", "StorageStatus",
    "UserCreate", "UserInDB", "Identity",
]
