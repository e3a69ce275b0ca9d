import pytest
from uuid import uuid4

from sensory_drive.client import DriveClient
from sensory_drive.exceptions import NotFoundError, QuotaExceededError, InvalidRequestError
from sensory_drive.models import UploadRegistration
from sensory_drive.repositories.pg_repositoryQuota import QUOTA_EXCEEDED_MESSAGE

from conftest import upload

pytestmark = pytest.mark.asyncio


async def test_new_user_gets_default_quota(drive_client: DriveClient, user):
    status = await drive_client.get_storage_status(user.id)
    assert status.storage_used == 0
    assert status.storage_limit == 5 * 1024 ** 3
    assert status.percentage_used == 0


async def test_upload_rejected_when_over_limit(drive_client: DriveClient, user, blob_store):
    """Лимит 1000, занято 600: файл на 500 байт не принимается ни одним из путей загрузки."""
    await drive_client.quota.set_limit(user.id, 1000)
    await upload(drive_client, user, content=b"x" * 600)

    with pytest.raises(QuotaExceededError, match="Storage limit exceeded"):
        await drive_client.request_upload_url(user.id, "big.bin", 500, "application/octet-stream")
    with pytest.raises(QuotaExceededError):
        await upload(drive_client, user, name="big.bin", content=b"x" * 500)

    status = await drive_client.get_storage_status(user.id)
    assert status.storage_used == 600
    assert status.percentage_used == pytest.approx(60.0)
    assert len(blob_store.objects) == 1
    page = await drive_client.list_files(user.id)
    assert page.pagination.total_count == 1


async def test_upload_exactly_to_limit_is_allowed(drive_client: DriveClient, user):
    await drive_client.quota.set_limit(user.id, 1000)
    await upload(drive_client, user, content=b"x" * 600)
    await upload(drive_client, user, name="rest.pdf", content=b"x" * 400)
    assert (await drive_client.get_storage_status(user.id)).storage_used == 1000


async def test_soft_delete_keeps_usage_permanent_delete_releases(drive_client: DriveClient, user):
    record = await upload(drive_client, user, content=b"x" * 250)
    await drive_client.delete_file(record.id, user.id)
    assert (await drive_client.get_storage_status(user.id)).storage_used == 250

    await drive_client.restore_file(record.id, user.id)
    assert (await drive_client.get_storage_status(user.id)).storage_used == 250

    await drive_client.delete_file(record.id, user.id)
    await drive_client.permanently_delete_file(record.id, user.id)
    assert (await drive_client.get_storage_status(user.id)).storage_used == 0


async def test_charge_is_guarded_by_limit(drive_client: DriveClient, user):
    quota = drive_client.quota
    await quota.set_limit(user.id, 300)

    results = []
    for _ in range(5):
        try:
            results.append(await quota.charge(user.id, 100))
        except QuotaExceededError as e:
            assert str(e) == QUOTA_EXCEEDED_MESSAGE
            results.append(None)

    assert results == [100, 200, 300, None, None]
    assert (await quota.get_status(user.id)).storage_used == 300


async def test_charge_without_guard_may_overcommit(drive_client: DriveClient, user):
    await drive_client.quota.set_limit(user.id, 100)
    assert await drive_client.quota.charge(user.id, 150, enforce_limit=False) == 150
    status = await drive_client.get_storage_status(user.id)
    assert status.percentage_used == pytest.approx(150.0)


async def test_release_is_floored_at_zero(drive_client: DriveClient, user):
    await drive_client.quota.charge(user.id, 40)
    await drive_client.quota.release(user.id, 100)
    assert (await drive_client.get_storage_status(user.id)).storage_used == 0


async def test_unknown_user(drive_client: DriveClient):
    with pytest.raises(NotFoundError):
        await drive_client.quota.charge(uuid4(), 10)
    with pytest.raises(NotFoundError):
        await drive_client.get_storage_status(uuid4())


async def test_negative_sizes_rejected(drive_client: DriveClient, user):
    with pytest.raises(InvalidRequestError):
        await drive_client.quota.charge(user.id, -1)
    with pytest.raises(InvalidRequestError):
        await drive_client.quota.set_limit(user.id, -1)


async def test_zero_limit_reports_zero_percent(drive_client: DriveClient, user):
    status = await drive_client.quota.set_limit(user.id, 0)
    assert status.storage_limit == 0
    assert status.percentage_used == 0


async def test_direct_registration_overcommits_after_admission(drive_client: DriveClient, user, blob_store):
    """Допуск проверяется при выдаче ссылки; регистрация списывает фактический размер без проверки."""
    await drive_client.quota.set_limit(user.id, 1000)
    await drive_client.quota.charge(user.id, 600)
    ticket = await drive_client.request_upload_url(user.id, "clip.mp4", 300, "video/mp4")
    blob_store.put(ticket.blob_name, b"v" * 700)

    await drive_client.register_upload(user.id, UploadRegistration(
        file_name="clip.mp4",
        original_name="clip.mp4",
        file_size=700,
        mime_type="video/mp4",
        blob_name=ticket.blob_name,
        blob_url=ticket.sas_url,
    ))
    assert (await drive_client.get_storage_status(user.id)).storage_used == 1300


async def test_set_storage_limit_by_email(drive_client: DriveClient, user):
    status = await drive_client.set_storage_limit("ALICE@example.com", 2048)
    assert status.storage_limit == 2048
    with pytest.raises(NotFoundError):
        await drive_client.set_storage_limit("nobody@example.com", 1)
