import re
import secrets
import time
from typing import Optional

from sensory_drive.models.file import FileType

DOCUMENT_MIME_TYPES = frozenset({
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "application/rtf",
    "application/vnd.oasis.opendocument.text",
    "application/vnd.oasis.opendocument.spreadsheet",
    "application/vnd.oasis.opendocument.presentation",
})

PREVIEWABLE_DOC_TYPES = frozenset({"text/plain", "text/csv", "application/json"})

FILE_ICONS = {
    FileType.image: "🖼️",
    FileType.video: "🎥",
    FileType.pdf: "📄",
    FileType.document: "📄",
    FileType.other: "📁",
}

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def classify(mime_type: Optional[str]) -> FileType:
    """Грубая категория файла по MIME-типу. Тотальна: на любой вход ровно одна категория."""
    if not isinstance(mime_type, str):
        return FileType.other
    if mime_type.startswith("image/"):
        return FileType.image
    if mime_type.startswith("video/"):
        return FileType.video
    if mime_type == "application/pdf":
        return FileType.pdf
    if mime_type in DOCUMENT_MIME_TYPES:
        return FileType.document
    return FileType.other


def get_file_icon(file_type: str) -> str:
    try:
        return FILE_ICONS[FileType(file_type)]
    except ValueError:
        return FILE_ICONS[FileType.other]


def can_preview(file_type: str, mime_type: str) -> bool:
    if file_type in (FileType.image, FileType.video, FileType.pdf):
        return True
    return mime_type in PREVIEWABLE_DOC_TYPES


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    i = 0
    while size >= 1024 ** (i + 1) and i < len(_SIZE_UNITS) - 1:
        i += 1
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def sanitize_filename(filename: str) -> str:
    """Оставляет только [a-zA-Z0-9.-], остальное -> '_' без повторов и краевых '_'."""
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned.strip("_")


def generate_unique_filename(original_name: str) -> str:
    """
    `report final.pdf` -> `report_final_1700000000000_k3j9x2.pdf`.
    Миллисекунды + случайный суффикс, расширение сохраняется.
    """
    stem, dot, ext = original_name.rpartition(".")
    if not dot or not stem:
        stem, ext = original_name, ""
    stamp = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    base = f"{sanitize_filename(stem) or 'file'}_{stamp}_{suffix}"
    clean_ext = sanitize_filename(ext)
    return f"{base}.{clean_ext}" if clean_ext else base
