import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from sensory_drive import create_drive_client
from sensory_drive import logging as drive_logging
from sensory_drive.client import DriveClient
from . import auth
from .errors import register_exception_handlers
from .routes import files, share, upload, user, youtube

logger = logging.getLogger(__name__)


def create_app(drive_client: Optional[DriveClient] = None) -> FastAPI:
    """
    Собирает FastAPI-приложение.

    :param drive_client: готовый клиент (тесты, встраивание). Если не передан,
                         он создается из настроек окружения при старте и
                         закрывается при остановке.
    """
    drive_logging.configure()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = drive_client is None
        app.state.drive_client = drive_client or create_drive_client()
        logger.info("Drive API started")
        try:
            yield
        finally:
            if owned:
                await app.state.drive_client.aclose()
            logger.info("Drive API stopped")

    app = FastAPI(title="Sensory Drive API", lifespan=lifespan)
    if drive_client is not None:
        app.state.drive_client = drive_client
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(upload.router)
    app.include_router(share.router)
    app.include_router(user.router)
    app.include_router(youtube.router)

    @app.get("/health", tags=["System"])
    async def health():
        return {"status": "ok"}

    return app
