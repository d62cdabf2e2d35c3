"""
Доменная модель контекста бронирования.

Содержит сущность бронирования, причины отказа и доменный сервис
проверки доступности юнита на период проживания.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..shared_kernel import EntityId, StayInterval, check_out_for
from .interfaces import ByGuest, ByUnit, IBookingRepository


class BookingStatus(str, Enum):
    """Статусы бронирования."""

    PROPOSED = "proposed"  # кандидат в памяти, в хранилище не попадает
    CONFIRMED = "confirmed"


class RejectionReason(str, Enum):
    """Машиночитаемые причины отказа."""

    UNIT_OCCUPIED = "UnitOccupied"
    GUEST_DOUBLE_BOOKED = "GuestDoubleBooked"
    NOT_FOUND = "NotFound"
    INVALID_INPUT = "InvalidInput"


class Booking(BaseModel):
    """Бронирование юнита гостем."""

    model_config = ConfigDict(frozen=True)

    id: Optional[EntityId] = None
    guest_name: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    check_in_date: date
    number_of_nights: int = Field(..., ge=1)
    status: BookingStatus = BookingStatus.PROPOSED

    @field_validator("guest_name", "unit_id", mode="before")
    @classmethod
    def strip_identifier(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    @model_validator(mode="after")
    def check_out_representable(self) -> "Booking":
        check_out_for(self.check_in_date, self.number_of_nights)
        return self

    @property
    def check_out_date(self) -> date:
        """Дата выезда (не входит в период проживания)."""
        return check_out_for(self.check_in_date, self.number_of_nights)

    @property
    def interval(self) -> StayInterval:
        return StayInterval.from_nights(self.check_in_date, self.number_of_nights)

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

    @classmethod
    def propose(
        cls,
        guest_name: str,
        unit_id: str,
        check_in_date: date,
        number_of_nights: int,
    ) -> "Booking":
        """Создает кандидата на бронирование."""
        return cls(
            guest_name=guest_name,
            unit_id=unit_id,
            check_in_date=check_in_date,
            number_of_nights=number_of_nights,
        )

    def extended_to(self, total_nights: int) -> "Booking":
        """
        Возвращает кандидата на продление.

        total_nights - итоговое количество ночей, а не количество добавляемых.
        Идентификатор и дата заезда сохраняются.
        """
        return Booking(
            id=self.id,
            guest_name=self.guest_name,
            unit_id=self.unit_id,
            check_in_date=self.check_in_date,
            number_of_nights=total_nights,
            status=BookingStatus.PROPOSED,
        )

    def confirmed(self, booking_id: EntityId) -> "Booking":
        """Возвращает сохраненную копию с назначенным идентификатором."""
        return self.model_copy(
            update={"id": booking_id, "status": BookingStatus.CONFIRMED}
        )

    def overlaps(self, other: "Booking") -> bool:
        return self.interval.overlaps(other.interval)


class AvailabilityVerdict(BaseModel):
    """Решение о допуске кандидата."""

    model_config = ConfigDict(frozen=True)

    admit: bool
    reason: Optional[RejectionReason] = None
    conflicting_id: Optional[EntityId] = None

    @classmethod
    def admitted(cls) -> "AvailabilityVerdict":
        return cls(admit=True)

    @classmethod
    def rejected(
        cls, reason: RejectionReason, conflicting_id: Optional[EntityId] = None
    ) -> "AvailabilityVerdict":
        return cls(admit=False, reason=reason, conflicting_id=conflicting_id)


def find_conflicts(candidate: Booking, existing: List[Booking]) -> List[Booking]:
    """Возвращает брони, период которых пересекается с кандидатом."""
    return [booking for booking in existing if candidate.overlaps(booking)]


class AvailabilityChecker:
    """Доменный сервис проверки доступности."""

    def __init__(self, booking_repository: IBookingRepository):
        self.booking_repository = booking_repository

    def check_availability(
        self, candidate: Booking, excluding_id: Optional[EntityId] = None
    ) -> AvailabilityVerdict:
        """
        Проверяет, можно ли допустить кандидата.

        Args:
            candidate: Предлагаемое бронирование
            excluding_id: Бронь, которая не участвует в проверке (продлеваемая)

        Returns:
            Вердикт с причиной отказа, если кандидат не допущен
        """
        # Юнит не должен быть занят на пересекающийся период
        unit_bookings = self.booking_repository.find(
            ByUnit(unit_id=candidate.unit_id, exclude_id=excluding_id)
        )
        conflicts = find_conflicts(candidate, unit_bookings)
        if conflicts:
            return AvailabilityVerdict.rejected(
                RejectionReason.UNIT_OCCUPIED, conflicts[0].id
            )

        # Гость не может находиться в двух юнитах одновременно
        guest_bookings = self.booking_repository.find(
            ByGuest(guest_name=candidate.guest_name, exclude_id=excluding_id)
        )
        conflicts = [
            booking
            for booking in find_conflicts(candidate, guest_bookings)
            if booking.unit_id != candidate.unit_id
        ]
        if conflicts:
            return AvailabilityVerdict.rejected(
                RejectionReason.GUEST_DOUBLE_BOOKED, conflicts[0].id
            )

        return AvailabilityVerdict.admitted()
