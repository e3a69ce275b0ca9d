from datetime import timedelta

import pytest

from sensory_drive.client import DriveClient
from sensory_drive.db import FileORM, KIND_BLOB
from sensory_drive.db.base import utcnow
from sensory_drive.exceptions import ConflictError, InvalidRequestError
from sensory_drive.models import ExternalRef, FileType, YouTubeCreate
from sensory_drive.utils.file_types import classify

from conftest import upload

pytestmark = pytest.mark.asyncio


async def _names(drive_client, user_id, file_filter="all", search=None):
    page = await drive_client.list_files(user_id, file_filter, search)
    return sorted(f.name for f in page.files)


@pytest.fixture
def mixed_files():
    return [
        ("photo.png", "image/png"),
        ("clip.mp4", "video/mp4"),
        ("report.pdf", "application/pdf"),
        ("budget.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
        ("archive.zip", "application/zip"),
    ]


async def test_category_filters(drive_client: DriveClient, user, mixed_files):
    for name, mime in mixed_files:
        await upload(drive_client, user, name=name, content=b"x", mime_type=mime)

    assert await _names(drive_client, user.id, "images") == ["photo.png"]
    assert await _names(drive_client, user.id, "videos") == ["clip.mp4"]
    assert await _names(drive_client, user.id, "pdfs") == ["report.pdf"]
    assert await _names(drive_client, user.id, "docs") == ["budget.xlsx"]
    assert len(await _names(drive_client, user.id)) == 5


async def test_recent_filter(drive_client: DriveClient, user):
    await upload(drive_client, user, name="fresh.pdf")
    await drive_client.files.create(FileORM(
        user_id=user.id,
        kind=KIND_BLOB,
        name="old.pdf",
        original_name="old.pdf",
        size=1,
        mime_type="application/pdf",
        file_type=classify("application/pdf"),
        blob_url="http://blobs.test/drive-files/old.pdf",
        blob_name="old.pdf",
        uploaded_at=utcnow() - timedelta(days=10),
    ))

    assert await _names(drive_client, user.id, "recent") == ["fresh.pdf"]
    assert await _names(drive_client, user.id) == ["fresh.pdf", "old.pdf"]


async def test_search_is_case_insensitive_over_name_description_and_tags(drive_client: DriveClient, user):
    invoice = await upload(drive_client, user, name="Invoice-March.pdf")
    notes = await upload(drive_client, user, name="notes.txt", mime_type="text/plain")
    await upload(drive_client, user, name="cat.png", mime_type="image/png")
    await drive_client.update_details(notes.id, user.id, description="Meeting with the INVOICE team")
    await drive_client.update_details(invoice.id, user.id, tags=["finance"])

    assert await _names(drive_client, user.id, search="invoice") == ["Invoice-March.pdf", "notes.txt"]
    assert await _names(drive_client, user.id, search="FINAN") == ["Invoice-March.pdf"]
    assert await _names(drive_client, user.id, search="invoice", file_filter="pdfs") == ["Invoice-March.pdf"]
    assert len(await _names(drive_client, user.id, search="   ")) == 3


async def test_search_treats_wildcards_literally(drive_client: DriveClient, user):
    await upload(drive_client, user, name="100%_done.txt", mime_type="text/plain")
    await upload(drive_client, user, name="1000.txt", mime_type="text/plain")

    assert await _names(drive_client, user.id, search="0%") == ["100%_done.txt"]
    assert await _names(drive_client, user.id, search="%_") == ["100%_done.txt"]
    assert await _names(drive_client, user.id, search="1_0") == []


async def test_pagination(drive_client: DriveClient, user):
    uploaded = [await upload(drive_client, user, name=f"f{i}.pdf") for i in range(5)]
    newest_first = [r.id for r in reversed(uploaded)]

    first = await drive_client.list_files(user.id, page=1, limit=2)
    assert [f.id for f in first.files] == newest_first[:2]
    assert first.pagination.total_count == 5
    assert first.pagination.total_pages == 3
    assert first.pagination.has_more is True

    last = await drive_client.list_files(user.id, page=3, limit=2)
    assert [f.id for f in last.files] == newest_first[4:]
    assert last.pagination.has_more is False

    beyond = await drive_client.list_files(user.id, page=4, limit=2)
    assert beyond.files == []
    assert beyond.pagination.has_more is False


async def test_default_page_size(drive_client: DriveClient, user):
    page = await drive_client.list_files(user.id)
    assert page.pagination.limit == 20
    assert page.pagination.total_pages == 0


@pytest.mark.parametrize("kwargs", [
    {"file_filter": "everything"},
    {"page": 0},
    {"limit": 0},
    {"limit": 101},
])
async def test_invalid_listing_arguments(drive_client: DriveClient, user, kwargs):
    with pytest.raises(InvalidRequestError):
        await drive_client.list_files(user.id, **kwargs)


async def test_youtube_reference(drive_client: DriveClient, user, blob_store):
    payload = YouTubeCreate(
        type="youtube-video",
        url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        title="Never Gonna Give You Up",
        video_id="dQw4w9WgXcQ",
        thumbnail="https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
    )
    record = await drive_client.add_youtube(user.id, payload)

    assert isinstance(record, ExternalRef)
    assert record.size == 0
    assert record.file_type == FileType.video
    assert record.mime_type == "video/youtube"
    assert record.external_id == "dQw4w9WgXcQ"
    assert record.url == payload.url
    assert record.tags == ["youtube", "video"]
    assert record.you_tube_data.video_id == "dQw4w9WgXcQ"
    assert await _names(drive_client, user.id, "videos") == ["Never Gonna Give You Up"]
    assert await _names(drive_client, user.id, search="youtube") == ["Never Gonna Give You Up"]

    with pytest.raises(ConflictError):
        await drive_client.add_youtube(user.id, payload)

    await drive_client.delete_file(record.id, user.id)
    await drive_client.permanently_delete_file(record.id, user.id)
    assert blob_store.objects == {}
    assert (await drive_client.get_storage_status(user.id)).storage_used == 0
