"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

# Идентификатор бронирования назначается хранилищем
EntityId = int


class StayInterval(BaseModel):
    """Период проживания [check_in, check_out)."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "StayInterval":
        if self.check_out <= self.check_in:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    @classmethod
    def from_nights(cls, check_in: date, nights: int) -> "StayInterval":
        """Строит период по дате заезда и количеству ночей."""
        return cls(check_in=check_in, check_out=check_out_for(check_in, nights))

    @property
    def nights(self) -> int:
        """Количество ночей в периоде."""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "StayInterval") -> bool:
        """Проверяет пересечение с другим периодом."""
        return overlaps(self, other)


def check_out_for(check_in: date, nights: int) -> date:
    """
    Дата выезда после nights ночей.

    Выбрасывает ValueError, если дата выходит за date.max.
    """
    if nights > (date.max - check_in).days:
        raise ValueError("Дата выезда выходит за допустимый диапазон дат")
    return check_in + timedelta(days=nights)


def overlaps(a: StayInterval, b: StayInterval) -> bool:
    """
    Пересекаются ли два полуоткрытых периода.

    Касание границ (выезд одного в день заезда другого) пересечением не считается.
    """
    return a.check_in < b.check_out and b.check_in < a.check_out


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class ConcurrencyException(DomainException):
    """Не удалось получить эксклюзивный доступ к ресурсу за отведенное время."""

    pass


class ConflictError(DomainException):
    """Хранилище отклонило запись из-за пересечения с существующей бронью."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        conflicting_id: Optional[EntityId] = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.conflicting_id = conflicting_id


class NotFoundError(DomainException):
    """Запрошенная запись отсутствует в хранилище."""

    pass


class RepositoryUnavailable(DomainException):
    """Сбой хранилища; операцию можно повторить позже."""

    pass
