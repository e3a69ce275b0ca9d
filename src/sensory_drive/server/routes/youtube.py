from typing import Annotated

from fastapi import APIRouter, Depends

from sensory_drive.client import DriveClient
from sensory_drive.models import YouTubeCreate
from ..auth import CurrentIdentity
from ..dependencies import get_drive_client

router = APIRouter(prefix="/youtube", tags=["YouTube"])


@router.post("")
async def add_youtube(
    payload: YouTubeCreate,
    identity: CurrentIdentity,
    client: Annotated[DriveClient, Depends(get_drive_client)],
):
    record = await client.add_youtube(identity.user_id, payload)
    return {"success": True, "file": record}
