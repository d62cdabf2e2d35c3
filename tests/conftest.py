"""
Общие фикстуры для тестов движка бронирований.
"""

from contextlib import contextmanager
from typing import Any, List, Tuple

import pytest

from reservation_engine.booking.application import BookingApplicationService
from reservation_engine.booking.infrastructure import (
    InMemoryBookingRepository,
    KeyedLockRegistry,
)


class RecordingLogger:
    """Логгер, запоминающий сообщения для проверок в тестах."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str, dict]] = []

    def info(self, message: str, **kwargs: Any) -> None:
        self.records.append(("info", message, kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self.records.append(("error", message, kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self.records.append(("warning", message, kwargs))

    def debug(self, message: str, **kwargs: Any) -> None:
        self.records.append(("debug", message, kwargs))

    def levels(self) -> List[str]:
        return [level for level, _, _ in self.records]


class NoLocks(KeyedLockRegistry):
    """Реестр блокировок, который ничего не блокирует."""

    @contextmanager
    def hold(self, *keys: str):
        yield


def create_payload(guest: str, unit: str, check_in: str, nights: int) -> dict:
    return {
        "guestName": guest,
        "unitID": unit,
        "checkInDate": check_in,
        "numberOfNights": nights,
    }


def extend_payload(unit: str, guest: str, nights: Any) -> dict:
    return {"unitID": unit, "guestName": guest, "extendedNumberOfNights": nights}


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def service(
    repository: InMemoryBookingRepository, logger: RecordingLogger
) -> BookingApplicationService:
    """Сервис приложения с чистым репозиторием в памяти."""
    return BookingApplicationService(repository, logger=logger)
