class DriveClientError(Exception):
    """Base class."""


class DatabaseError(DriveClientError):
    pass


class NotFoundError(DriveClientError):
    """Ресурс отсутствует или не принадлежит вызывающему пользователю."""


class InvalidRequestError(DriveClientError):
    pass


class QuotaExceededError(DriveClientError):
    pass


class VerificationFailedError(DriveClientError):
    """Клиент сообщил о прямой загрузке, но блоба в хранилище нет."""


class ConflictError(DriveClientError):
    pass


class UnauthorizedError(DriveClientError):
    pass


class StorageError(DriveClientError):
    pass


class MinioError(StorageError):
    pass
