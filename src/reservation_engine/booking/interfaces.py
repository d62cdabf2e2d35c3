"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Protocol, Union

from ..shared_kernel import EntityId

if TYPE_CHECKING:
    from .domain import Booking


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


# Типизированные описатели запросов к хранилищу


@dataclass(frozen=True)
class ByUnit:
    """Все брони юнита."""

    unit_id: str
    exclude_id: Optional[EntityId] = None

    def matches(self, booking: Booking) -> bool:
        return booking.unit_id == self.unit_id and booking.id != self.exclude_id


@dataclass(frozen=True)
class ByGuest:
    """Все брони гостя."""

    guest_name: str
    exclude_id: Optional[EntityId] = None

    def matches(self, booking: Booking) -> bool:
        return booking.guest_name == self.guest_name and booking.id != self.exclude_id


@dataclass(frozen=True)
class ByUnitAndGuest:
    """Брони гостя на конкретном юните."""

    unit_id: str
    guest_name: str
    exclude_id: Optional[EntityId] = None

    def matches(self, booking: Booking) -> bool:
        return (
            booking.unit_id == self.unit_id
            and booking.guest_name == self.guest_name
            and booking.id != self.exclude_id
        )


BookingQuery = Union[ByUnit, ByGuest, ByUnitAndGuest]


class IBookingRepository(Protocol):
    """
    Интерфейс репозитория для бронирований.

    Результаты выборок упорядочены по (check_in_date, id).
    Любой метод может выбросить RepositoryUnavailable при сбое хранилища.
    """

    def find(self, query: BookingQuery) -> List[Booking]: ...
    def find_by_unit(self, unit_id: str) -> List[Booking]: ...
    def find_by_guest(self, guest_name: str) -> List[Booking]: ...
    def get_by_id(self, booking_id: EntityId) -> Booking: ...
    def insert(self, booking: Booking) -> Booking: ...
    def update(self, booking_id: EntityId, booking: Booking) -> Booking: ...
