"""
Прикладной слой контекста бронирования.

Содержит сервисы приложения, которые координируют
взаимодействие между внешними интерфейсами и доменной моделью.
"""

from datetime import date
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from ..shared_kernel import (
    ConflictError,
    EntityId,
    RepositoryUnavailable,
    check_out_for,
)
from . import interfaces as ports
from .domain import (
    AvailabilityChecker,
    AvailabilityVerdict,
    Booking,
    BookingStatus,
    RejectionReason,
)
from .infrastructure import KeyedLockRegistry, StdLogger

# DTO (Data Transfer Objects) для входящих данных


def _reject_bool(v: Any) -> Any:
    # bool - подкласс int, но true не должен превращаться в одну ночь
    if isinstance(v, bool):
        raise ValueError("Ожидается целое число ночей, а не логическое значение")
    return v


class CreateBookingRequest(BaseModel):
    """Запрос на создание бронирования."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    guest_name: str = Field(..., alias="guestName", min_length=1)
    unit_id: str = Field(..., alias="unitID", min_length=1)
    check_in_date: date = Field(..., alias="checkInDate")
    number_of_nights: int = Field(..., alias="numberOfNights", ge=1)

    nights_not_bool = field_validator("number_of_nights", mode="before")(
        _reject_bool
    )

    @model_validator(mode="after")
    def check_out_representable(self) -> "CreateBookingRequest":
        check_out_for(self.check_in_date, self.number_of_nights)
        return self


class ExtendBookingRequest(BaseModel):
    """Запрос на продление бронирования."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    unit_id: str = Field(..., alias="unitID", min_length=1)
    guest_name: str = Field(..., alias="guestName", min_length=1)
    # Итоговое количество ночей после продления
    extended_number_of_nights: int = Field(
        ..., alias="extendedNumberOfNights", ge=1
    )

    nights_not_bool = field_validator("extended_number_of_nights", mode="before")(
        _reject_bool
    )


# DTO для исходящих данных


class BookingDTO(BaseModel):
    """DTO для представления бронирования."""

    model_config = ConfigDict(populate_by_name=True)

    id: EntityId
    guest_name: str = Field(..., alias="guestName")
    unit_id: str = Field(..., alias="unitID")
    check_in_date: date = Field(..., alias="checkInDate")
    check_out_date: date = Field(..., alias="checkOutDate")
    number_of_nights: int = Field(..., alias="numberOfNights")
    status: BookingStatus

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingDTO":
        """Создает DTO из доменной модели."""
        return cls(
            id=booking.id,
            guest_name=booking.guest_name,
            unit_id=booking.unit_id,
            check_in_date=booking.check_in_date,
            check_out_date=booking.check_out_date,
            number_of_nights=booking.number_of_nights,
            status=booking.status,
        )


class BookingOutcome(BaseModel):
    """Результат операции: бронь при успехе или причина отказа."""

    admitted: bool
    booking: Optional[BookingDTO] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, booking: Booking) -> "BookingOutcome":
        return cls(admitted=True, booking=BookingDTO.from_domain(booking))

    @classmethod
    def rejection(cls, reason: RejectionReason, message: str) -> "BookingOutcome":
        return cls(admitted=False, reason=reason, message=message)


BookingRequestPayload = Union[Mapping[str, Any], BaseModel]

_REJECTION_MESSAGES = {
    RejectionReason.UNIT_OCCUPIED: "Юнит уже занят на выбранные даты",
    RejectionReason.GUEST_DOUBLE_BOOKED: (
        "Гость не может находиться в нескольких юнитах одновременно"
    ),
    RejectionReason.NOT_FOUND: "Бронирование не найдено",
    RejectionReason.INVALID_INPUT: "Некорректные входные данные",
}


def _admission_keys(candidate: Booking) -> Tuple[str, str]:
    """Ключи блокировок, под которыми принимается решение о допуске."""
    return f"unit:{candidate.unit_id}", f"guest:{candidate.guest_name}"


def _late_conflict_reason(error: ConflictError) -> RejectionReason:
    """Причина отказа по ошибке хранилища; неизвестная считается UnitOccupied."""
    try:
        reason = RejectionReason(error.reason)
    except ValueError:
        return RejectionReason.UNIT_OCCUPIED
    if reason not in (
        RejectionReason.UNIT_OCCUPIED,
        RejectionReason.GUEST_DOUBLE_BOOKED,
    ):
        return RejectionReason.UNIT_OCCUPIED
    return reason


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "request"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


# Сервисы приложения


class BookingApplicationService:
    """
    Сервис приложения для создания и продления бронирований.

    Каждое решение принимается по данным, прочитанным из репозитория
    в начале операции; между вызовами брони не кэшируются.
    Фаза чтения и фаза записи выполняются под блокировками юнита и гостя,
    а конфликт, обнаруженный хранилищем при записи, превращается в отказ.
    """

    def __init__(
        self,
        repository: ports.IBookingRepository,
        locks: Optional[KeyedLockRegistry] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        """Инициализирует сервис."""
        self._repository = repository
        self._locks = locks or KeyedLockRegistry()
        self._logger = logger or StdLogger(__name__)
        self._checker = AvailabilityChecker(repository)

    def create_booking(self, request: BookingRequestPayload) -> BookingOutcome:
        """Создает новое бронирование."""
        try:
            request = CreateBookingRequest.model_validate(request)
        except ValidationError as e:
            return self._invalid_input(e, operation="create")

        candidate = Booking.propose(
            guest_name=request.guest_name,
            unit_id=request.unit_id,
            check_in_date=request.check_in_date,
            number_of_nights=request.number_of_nights,
        )

        try:
            with self._locks.hold(*_admission_keys(candidate)):
                verdict = self._checker.check_availability(candidate)
                if not verdict.admit:
                    return self._rejected(verdict, candidate, operation="create")

                try:
                    booking = self._repository.insert(candidate)
                except ConflictError as e:
                    return self._late_conflict(e, candidate, operation="create")
        except RepositoryUnavailable as e:
            self._logger.error(
                f"Хранилище недоступно при создании бронирования: {str(e)}",
                unit_id=candidate.unit_id,
                guest_name=candidate.guest_name,
            )
            raise

        self._logger.info(
            "Бронирование создано",
            booking_id=booking.id,
            unit_id=booking.unit_id,
            guest_name=booking.guest_name,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
        )
        return BookingOutcome.success(booking)

    def extend_booking(self, request: BookingRequestPayload) -> BookingOutcome:
        """
        Продлевает существующее бронирование гостя на юните.

        extendedNumberOfNights - новое итоговое количество ночей.
        Если у гостя несколько броней на юните, продлевается бронь
        с самой ранней датой заезда (при равенстве - с меньшим id).
        """
        try:
            request = ExtendBookingRequest.model_validate(request)
        except ValidationError as e:
            return self._invalid_input(e, operation="extend")

        keys = (f"unit:{request.unit_id}", f"guest:{request.guest_name}")
        try:
            with self._locks.hold(*keys):
                matches = self._repository.find(
                    ports.ByUnitAndGuest(
                        unit_id=request.unit_id, guest_name=request.guest_name
                    )
                )
                if not matches:
                    self._logger.info(
                        "Бронирование для продления не найдено",
                        unit_id=request.unit_id,
                        guest_name=request.guest_name,
                    )
                    return BookingOutcome.rejection(
                        RejectionReason.NOT_FOUND,
                        f"Бронирование для юнита {request.unit_id} "
                        f"и гостя {request.guest_name} не найдено",
                    )

                existing = min(matches, key=lambda b: (b.check_in_date, b.id))
                try:
                    candidate = existing.extended_to(
                        request.extended_number_of_nights
                    )
                except ValidationError as e:
                    return self._invalid_input(e, operation="extend")

                verdict = self._checker.check_availability(
                    candidate, excluding_id=existing.id
                )
                if not verdict.admit:
                    return self._rejected(verdict, candidate, operation="extend")

                try:
                    booking = self._repository.update(existing.id, candidate)
                except ConflictError as e:
                    return self._late_conflict(e, candidate, operation="extend")
        except RepositoryUnavailable as e:
            self._logger.error(
                f"Хранилище недоступно при продлении бронирования: {str(e)}",
                unit_id=request.unit_id,
                guest_name=request.guest_name,
            )
            raise

        self._logger.info(
            "Бронирование продлено",
            booking_id=booking.id,
            number_of_nights=booking.number_of_nights,
            check_out=booking.check_out_date,
        )
        return BookingOutcome.success(booking)

    def get_booking(self, booking_id: EntityId) -> BookingDTO:
        """Возвращает информацию о бронировании."""
        booking = self._repository.get_by_id(booking_id)
        return BookingDTO.from_domain(booking)

    def list_bookings(
        self,
        unit_id: Optional[str] = None,
        guest_name: Optional[str] = None,
    ) -> List[BookingDTO]:
        """Возвращает список бронирований юнита и/или гостя."""
        query: ports.BookingQuery
        if unit_id is not None and guest_name is not None:
            query = ports.ByUnitAndGuest(unit_id=unit_id, guest_name=guest_name)
        elif unit_id is not None:
            query = ports.ByUnit(unit_id=unit_id)
        elif guest_name is not None:
            query = ports.ByGuest(guest_name=guest_name)
        else:
            raise ValueError("Укажите unit_id или guest_name")

        return [BookingDTO.from_domain(b) for b in self._repository.find(query)]

    def _invalid_input(self, error: ValidationError, operation: str) -> BookingOutcome:
        message = _describe_validation_error(error)
        self._logger.info(
            "Запрос отклонен: некорректные данные",
            operation=operation,
            errors=message,
        )
        return BookingOutcome.rejection(
            RejectionReason.INVALID_INPUT,
            f"{_REJECTION_MESSAGES[RejectionReason.INVALID_INPUT]}: {message}",
        )

    def _rejected(
        self, verdict: AvailabilityVerdict, candidate: Booking, operation: str
    ) -> BookingOutcome:
        self._logger.info(
            "Запрос отклонен",
            operation=operation,
            reason=verdict.reason.value,
            unit_id=candidate.unit_id,
            guest_name=candidate.guest_name,
            conflicting_id=verdict.conflicting_id,
        )
        return BookingOutcome.rejection(
            verdict.reason, _REJECTION_MESSAGES[verdict.reason]
        )

    def _late_conflict(
        self, error: ConflictError, candidate: Booking, operation: str
    ) -> BookingOutcome:
        """Конфликт, обнаруженный хранилищем уже после проверки доступности."""
        reason = _late_conflict_reason(error)
        self._logger.warning(
            f"Хранилище отклонило запись: {str(error)}",
            operation=operation,
            reason=reason.value,
            unit_id=candidate.unit_id,
            guest_name=candidate.guest_name,
        )
        return BookingOutcome.rejection(reason, _REJECTION_MESSAGES[reason])
