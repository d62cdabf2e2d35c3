"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозиториев и других интерфейсов,
зависимые от конкретных технологий (файлы, потоки, логирование).
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..shared_kernel import (
    ConcurrencyException,
    ConflictError,
    EntityId,
    NotFoundError,
    RepositoryUnavailable,
)
from . import interfaces as ports
from .domain import Booking, RejectionReason, find_conflicts


class StdLogger(ports.ILogger):
    """Логгер, передающий сообщения в стандартный модуль logging."""

    def __init__(self, name: str = "reservation_engine"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        if kwargs:
            context = json.dumps(kwargs, default=str, ensure_ascii=False)
            message = f"{message} | {context}"
        self._logger.log(level, message, extra={"context": kwargs})

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)


class KeyedLockRegistry:
    """
    Эксклюзивные блокировки по ключам ("unit:U1", "guest:G1").

    Ключи захватываются в отсортированном порядке, поэтому два запроса
    с пересекающимися наборами ключей не могут заблокировать друг друга.
    Запись о ключе удаляется, когда его никто не держит и не ждет.
    """

    def __init__(self, timeout: float = 5.0):
        if timeout <= 0:
            raise ValueError("Таймаут блокировки должен быть положительным")
        self._timeout = timeout
        self._guard = threading.Lock()
        # ключ -> [блокировка, число владельцев и ожидающих]
        self._locks: Dict[str, List[Any]] = {}

    def active_keys(self) -> List[str]:
        """Ключи, которые сейчас удерживаются или ожидаются."""
        with self._guard:
            return sorted(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Удерживает все переданные ключи на время блока with."""
        acquired: List[Tuple[str, threading.Lock]] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                if not lock.acquire(timeout=self._timeout):
                    self._checkin(key)
                    raise ConcurrencyException(
                        f"Не удалось захватить блокировку {key} "
                        f"за {self._timeout} с"
                    )
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)


class InMemoryBookingRepository(ports.IBookingRepository):
    """
    Реализация репозитория бронирований в памяти.

    При enforce_constraints=True хранилище само проверяет отсутствие
    пересечений внутри операции записи и выбрасывает ConflictError.
    """

    def __init__(self, enforce_constraints: bool = True):
        self._bookings: Dict[EntityId, Booking] = {}
        self._next_id = 1
        self._lock = threading.RLock()
        self._enforce_constraints = enforce_constraints

    @staticmethod
    def _ordered(bookings: List[Booking]) -> List[Booking]:
        return sorted(bookings, key=lambda b: (b.check_in_date, b.id))

    def find(self, query: ports.BookingQuery) -> List[Booking]:
        with self._lock:
            return self._ordered(
                [booking for booking in self._bookings.values() if query.matches(booking)]
            )

    def find_by_unit(self, unit_id: str) -> List[Booking]:
        return self.find(ports.ByUnit(unit_id=unit_id))

    def find_by_guest(self, guest_name: str) -> List[Booking]:
        return self.find(ports.ByGuest(guest_name=guest_name))

    def get_by_id(self, booking_id: EntityId) -> Booking:
        with self._lock:
            if booking_id not in self._bookings:
                raise NotFoundError(f"Booking with id {booking_id} not found")
            return self._bookings[booking_id]

    def insert(self, booking: Booking) -> Booking:
        with self._lock:
            self._check_constraints(booking, exclude_id=None)
            stored = booking.confirmed(self._next_id)
            self._store({**self._bookings, stored.id: stored})
            self._next_id += 1
            return stored

    def update(self, booking_id: EntityId, booking: Booking) -> Booking:
        with self._lock:
            if booking_id not in self._bookings:
                raise NotFoundError(f"Booking with id {booking_id} not found")
            self._check_constraints(booking, exclude_id=booking_id)
            stored = booking.confirmed(booking_id)
            self._store({**self._bookings, booking_id: stored})
            return stored

    def _check_constraints(
        self, booking: Booking, exclude_id: Optional[EntityId]
    ) -> None:
        """Ограничение уровня хранилища: те же правила пересечения, но атомарно."""
        if not self._enforce_constraints:
            return

        others = [b for b in self._bookings.values() if b.id != exclude_id]

        same_unit = [b for b in others if b.unit_id == booking.unit_id]
        for conflict in find_conflicts(booking, same_unit):
            raise ConflictError(
                f"Unit {booking.unit_id} is already booked by booking {conflict.id}",
                reason=RejectionReason.UNIT_OCCUPIED.value,
                conflicting_id=conflict.id,
            )

        same_guest = [
            b
            for b in others
            if b.guest_name == booking.guest_name and b.unit_id != booking.unit_id
        ]
        for conflict in find_conflicts(booking, same_guest):
            raise ConflictError(
                f"Guest {booking.guest_name} already stays in unit "
                f"{conflict.unit_id} (booking {conflict.id})",
                reason=RejectionReason.GUEST_DOUBLE_BOOKED.value,
                conflicting_id=conflict.id,
            )

    def _store(self, bookings: Dict[EntityId, Booking]) -> None:
        """Фиксирует новое состояние хранилища."""
        self._bookings = bookings


class JsonFileBookingRepository(InMemoryBookingRepository):
    """Репозиторий бронирований, сохраняющий данные в JSON-файл."""

    def __init__(self, file_path: str, enforce_constraints: bool = True):
        """
        Инициализирует репозиторий.

        Args:
            file_path: Путь к JSON-файлу с данными
            enforce_constraints: Проверять пересечения при записи
        """
        super().__init__(enforce_constraints=enforce_constraints)
        self._file_path = Path(file_path)
        self._load_data()

    def _load_data(self) -> None:
        """Загружает данные из JSON-файла."""
        if not self._file_path.exists():
            return

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = f.read()
        except OSError as e:
            raise RepositoryUnavailable(
                f"Не удалось прочитать {self._file_path}: {e}"
            ) from e

        if not raw_data.strip():
            return

        try:
            items = json.loads(raw_data)
            bookings = [Booking.model_validate(item) for item in items]
        except ValueError as e:
            raise RepositoryUnavailable(
                f"Поврежден файл хранилища {self._file_path}: {e}"
            ) from e

        self._bookings = {booking.id: booking for booking in bookings}
        if self._bookings:
            self._next_id = max(self._bookings) + 1

    def _store(self, bookings: Dict[EntityId, Booking]) -> None:
        # Сначала файл, затем память: при сбое записи состояние не меняется
        self._save_data(bookings)
        super()._store(bookings)

    def _save_data(self, bookings: Dict[EntityId, Booking]) -> None:
        """Сохраняет данные в JSON-файл."""
        data = [
            booking.model_dump(mode="json")
            for booking in self._ordered(list(bookings.values()))
        ]
        tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._file_path)
        except OSError as e:
            raise RepositoryUnavailable(
                f"Не удалось записать {self._file_path}: {e}"
            ) from e
