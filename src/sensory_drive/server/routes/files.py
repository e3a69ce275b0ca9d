from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from sensory_drive.client import DriveClient
from sensory_drive.models import FileRename, FileDetailsUpdate
from ..auth import CurrentIdentity
from ..dependencies import get_drive_client

router = APIRouter(prefix="/files", tags=["Files"])

Client = Annotated[DriveClient, Depends(get_drive_client)]


@router.get("")
async def list_files(
    identity: CurrentIdentity,
    client: Client,
    file_filter: str = Query("all", alias="filter"),
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
):
    """Файлы пользователя с фильтром, поиском и постраничной выдачей."""
    return await client.list_files(identity.user_id, file_filter, search, page, limit)


@router.get("/trash")
async def list_trash(identity: CurrentIdentity, client: Client):
    return await client.list_trash(identity.user_id)


@router.patch("/{file_id}/rename")
async def rename_file(file_id: UUID, payload: FileRename, identity: CurrentIdentity, client: Client):
    record = await client.rename_file(file_id, identity.user_id, payload.name)
    return {"success": True, "file": record}


@router.patch("/{file_id}")
async def update_file_details(file_id: UUID, payload: FileDetailsUpdate, identity: CurrentIdentity, client: Client):
    record = await client.update_details(file_id, identity.user_id, payload.description, payload.tags)
    return {"success": True, "file": record}


@router.post("/{file_id}/star")
async def toggle_star(file_id: UUID, identity: CurrentIdentity, client: Client):
    return {"isStarred": await client.toggle_star(file_id, identity.user_id)}


@router.delete("/{file_id}")
async def delete_file(file_id: UUID, identity: CurrentIdentity, client: Client):
    """Переносит файл в корзину."""
    await client.delete_file(file_id, identity.user_id)
    return {"success": True}


@router.post("/{file_id}/restore")
async def restore_file(file_id: UUID, identity: CurrentIdentity, client: Client):
    await client.restore_file(file_id, identity.user_id)
    return {"success": True}


@router.delete("/{file_id}/permanent-delete")
async def permanently_delete_file(file_id: UUID, identity: CurrentIdentity, client: Client):
    await client.permanently_delete_file(file_id, identity.user_id)
    return {"success": True}


@router.post("/{file_id}/share")
async def create_share_link(file_id: UUID, request: Request, identity: CurrentIdentity, client: Client):
    return await client.create_share_link(file_id, identity.user_id, base_url=str(request.base_url))


@router.delete("/{file_id}/share")
async def revoke_share_link(file_id: UUID, identity: CurrentIdentity, client: Client):
    await client.revoke_share_link(file_id, identity.user_id)
    return {"success": True}
