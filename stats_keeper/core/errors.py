import enum
from typing import Optional, Tuple

from fastapi import status


class ErrorKind(str, enum.Enum):
    """Закрытый набор видов ошибок хранилища"""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    NO_UPDATE = "NO_UPDATE"
    INTERNAL = "INTERNAL"


_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_UPDATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class StorageError(Exception):
    """
    Ошибка, пересекающая границу хранилища.

    Наружу из StatisticService выходят только такие ошибки. Исходное
    исключение (если есть) хранится в ``cause`` и нужно только для логов.
    """

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"StorageError({self.kind.value}, {self.message!r})"

    def __eq__(self, other):
        if not isinstance(other, StorageError):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __hash__(self):
        return hash((self.kind, self.message))


def _format(message: str, args: tuple) -> str:
    return message % args if args else message


def invalid_argument(message: str, *args) -> StorageError:
    return StorageError(ErrorKind.INVALID_ARGUMENT, _format(message, args))


def not_found(message: str, *args) -> StorageError:
    return StorageError(ErrorKind.NOT_FOUND, _format(message, args))


def no_update(message: str, *args) -> StorageError:
    return StorageError(ErrorKind.NO_UPDATE, _format(message, args))


def internal(message: str, *args, cause: Optional[BaseException] = None) -> StorageError:
    return StorageError(ErrorKind.INTERNAL, _format(message, args), cause=cause)


def status_of(kind: ErrorKind) -> int:
    """HTTP статус для вида ошибки. Единственное место такого соответствия."""
    return _STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def to_http_error(err: BaseException) -> Tuple[int, str, Optional[str]]:
    """Разложить любую ошибку на (статус, сообщение, вид ошибки)"""
    if isinstance(err, StorageError):
        return status_of(err.kind), err.message, err.kind.value
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error", ErrorKind.INTERNAL.value
