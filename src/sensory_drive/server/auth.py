from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from pydantic import BaseModel

from sensory_drive.client import DriveClient
from sensory_drive.config import AuthConfig, get_settings
from sensory_drive.exceptions import UnauthorizedError
from sensory_drive.models.user import Identity, UserCreate, UserInDB
from .dependencies import get_drive_client

# --- 1. Конфигурация ---
# tokenUrl указывает на эндпоинт, который выдает токен.
# auto_error=False: отсутствие токена превращаем в UnauthorizedError сами,
# чтобы ответ имел общий формат {"error": ...}
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_config() -> AuthConfig:
    return get_settings().auth


# --- 2. Pydantic-схемы ---
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# --- 3. Функции-хелперы ---
def create_access_token(user_id: UUID, email: str | None = None, config: AuthConfig | None = None) -> str:
    """Создает JWT с sub=<id пользователя>."""
    config = config or get_auth_config()
    expire = datetime.now(timezone.utc) + timedelta(minutes=config.access_token_expire_minutes)
    to_encode = {"sub": str(user_id), "exp": expire}
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str, config: AuthConfig | None = None) -> Identity:
    config = config or get_auth_config()
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
        sub = payload.get("sub")
        if sub is None:
            raise UnauthorizedError("Unauthorized")
        return Identity(user_id=UUID(sub), email=payload.get("email"))
    except (JWTError, ValueError) as e:
        raise UnauthorizedError("Unauthorized") from e


# --- 4. Главная зависимость FastAPI ---
async def get_current_identity(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    data_client: Annotated[DriveClient, Depends(get_drive_client)],
) -> Identity:
    """
    "Сторож" защищенных эндпоинтов.

    1. Получает токен из заголовка Authorization.
    2. Проверяет подпись и срок действия.
    3. Убеждается, что пользователь существует и активен.
    4. Возвращает Identity, которую обработчик явно передает в DriveClient.
    """
    if not token:
        raise UnauthorizedError("Unauthorized")
    identity = decode_access_token(token)
    user = await data_client.users.get_by_id(identity.user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("Unauthorized")
    return Identity(user_id=user.id, email=user.email)


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


# --- 5. Эндпоинты ---
@router.post("/register", response_model=UserInDB, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCreate,
    data_client: Annotated[DriveClient, Depends(get_drive_client)],
):
    return await data_client.register_user(payload.email, payload.name, payload.password)


@router.post("/token", response_model=Token)
async def login(
    form: Annotated[OAuth2PasswordRequestForm, Depends()],
    data_client: Annotated[DriveClient, Depends(get_drive_client)],
):
    user = await data_client.authenticate(form.username, form.password)
    if user is None:
        raise UnauthorizedError("Invalid email or password")
    return Token(access_token=create_access_token(user.id, user.email))
