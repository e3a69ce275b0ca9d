from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile

from sensory_drive.client import DriveClient
from sensory_drive.exceptions import InvalidRequestError
from sensory_drive.models import UploadTicketRequest, UploadRegistration
from ..auth import CurrentIdentity
from ..dependencies import get_drive_client

router = APIRouter(prefix="/upload", tags=["Upload"])

Client = Annotated[DriveClient, Depends(get_drive_client)]


@router.post("")
async def upload_file(identity: CurrentIdentity, client: Client, file: Optional[UploadFile] = File(None)):
    """Загрузка через сервер (multipart, поле `file`)."""
    if file is None or not file.filename:
        raise InvalidRequestError("No file provided")
    content = await file.read()
    record = await client.upload_file(identity.user_id, file.filename, content, file.content_type)
    return {"message": "File uploaded successfully", "file": record}


@router.post("/sas-token")
async def request_upload_url(payload: UploadTicketRequest, identity: CurrentIdentity, client: Client):
    """Presigned PUT для загрузки напрямую в хранилище."""
    return await client.request_upload_url(identity.user_id, payload.file_name, payload.file_size, payload.mime_type)


@router.post("/register")
async def register_upload(payload: UploadRegistration, identity: CurrentIdentity, client: Client):
    record = await client.register_upload(identity.user_id, payload)
    return {"message": "File registered successfully", "file": record}
