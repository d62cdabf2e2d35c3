from typing import Any, Dict, Optional

from .booking.application import BookingApplicationService
from .booking.infrastructure import (
    InMemoryBookingRepository,
    JsonFileBookingRepository,
    KeyedLockRegistry,
    StdLogger,
)
from .config import Settings, configure_logging, get_settings


def build_repository(settings: Settings) -> InMemoryBookingRepository:
    """Создает репозиторий бронирований по настройкам."""
    if settings.storage_backend == "json":
        return JsonFileBookingRepository(
            str(settings.storage_path),
            enforce_constraints=settings.enforce_storage_constraints,
        )
    return InMemoryBookingRepository(
        enforce_constraints=settings.enforce_storage_constraints
    )


def bootstrap_app(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()

    # 1. Логирование
    configure_logging(settings)

    # 2. Хранилище и блокировки допуска
    repository = build_repository(settings)
    locks = KeyedLockRegistry(timeout=settings.lock_timeout_seconds)

    # 3. Сервис получает зависимости явно, без глобального клиента БД
    booking_service = BookingApplicationService(
        repository=repository,
        locks=locks,
        logger=StdLogger("reservation_engine.booking"),
    )

    return {
        "settings": settings,
        "repository": repository,
        "booking_service": booking_service,
    }
