"""Error taxonomy and the result value returned by every store adapter."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class CarServiceError(Exception):
    default_message = "Unknown error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidCredentials(CarServiceError):
    default_message = "Invalid credentials"


class UserNotFound(CarServiceError):
    default_message = "User not found"


class EmailAlreadyInUse(CarServiceError):
    default_message = "Email already in use"


class NotFound(CarServiceError):
    default_message = "Document not found"


class AlreadyAccepted(CarServiceError):
    default_message = "Service request already accepted"


class UnknownError(CarServiceError):
    """Wraps any underlying store or identity failure."""

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        if message is None and cause is not None:
            message = str(cause) or type(cause).__name__
        super().__init__(message)
        self.__cause__ = cause


def wrap(exc: BaseException) -> CarServiceError:
    if isinstance(exc, CarServiceError):
        return exc
    return UnknownError(cause=exc)


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[CarServiceError] = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(error=wrap(error))

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def get_or_none(self) -> Optional[T]:
        return self.value

    def get_or_raise(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value

    def error_message(self) -> str:
        return self.error.message if self.error is not None else ""
