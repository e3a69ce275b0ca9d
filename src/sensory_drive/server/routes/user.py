from typing import Annotated

from fastapi import APIRouter, Depends

from sensory_drive.client import DriveClient
from ..auth import CurrentIdentity
from ..dependencies import get_drive_client

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/storage")
async def get_storage(identity: CurrentIdentity, client: Annotated[DriveClient, Depends(get_drive_client)]):
    return await client.get_storage_status(identity.user_id)
