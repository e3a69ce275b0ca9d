from fastapi import Request

from sensory_drive.client import DriveClient


def get_drive_client(request: Request) -> DriveClient:
    """DriveClient создается один раз в lifespan приложения и живет в app.state."""
    return request.app.state.drive_client
