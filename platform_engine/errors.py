# platform_engine/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    UNCLASSIFIED = "unclassified"


class ServiceError(Exception):
    """Базовая ошибка сервисного слоя. kind — дискриминатор для match/case."""

    kind: ErrorKind = ErrorKind.UNCLASSIFIED


class WrongParameterError(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, param: str) -> None:
        super().__init__(f"Wrong parameter: {param}")
        self.param = param


class MaterialError(ServiceError):
    def __init__(self, message: str, material_id: Optional[Any] = None) -> None:
        super().__init__(message)
        self.material_id = material_id


class MaterialNotFoundError(MaterialError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, material_id: Any) -> None:
        super().__init__(f"Material {material_id} not found", material_id)


class MaterialValidationError(MaterialError):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(f"Material validation error: {message}")
        # текст стора как есть, без префикса
        self.message = message


class StoreValidationError(ValueError):
    """Стор отклонил запись: валидаторы модели или constraint в БД."""


def error_kind(exc: BaseException) -> ErrorKind:
    if isinstance(exc, ServiceError):
        return exc.kind
    return ErrorKind.UNCLASSIFIED


__all__ = [
    "ErrorKind",
    "ServiceError",
    "WrongParameterError",
    "MaterialError",
    "MaterialNotFoundError",
    "MaterialValidationError",
    "StoreValidationError",
    "error_kind",
]
