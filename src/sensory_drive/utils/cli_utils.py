from rich.console import Console
from sensory_drive.utils.file_types import format_file_size


def get_rich_console() -> Console: return Console(stderr=True)


def describe_quota(used: int, limit: int) -> str:
    """`1.5 GB / 5 GB (30.0%)` для вывода в консоль."""
    percent = (used / limit * 100) if limit else 0.0
    return f"{format_file_size(used)} / {format_file_size(limit)} ({percent:.1f}%)"
