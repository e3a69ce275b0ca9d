from typing import Annotated

from fastapi import APIRouter, Depends

from sensory_drive.client import DriveClient
from ..dependencies import get_drive_client

router = APIRouter(prefix="/share", tags=["Share"])


@router.get("/{token}")
async def get_shared_file(token: str, client: Annotated[DriveClient, Depends(get_drive_client)]):
    # Без аутентификации: доступ дает только сам токен
    return {"file": await client.get_shared_file(token)}
