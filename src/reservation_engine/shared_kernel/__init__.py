"""
Общее ядро (Shared Kernel) движка бронирований.

Содержит общие типы данных и исключения, используемые во всех слоях.
"""

from .domain import (
    ConcurrencyException,
    ConflictError,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    NotFoundError,
    RepositoryUnavailable,
    StayInterval,
    # Утилиты
    check_out_for,
    overlaps,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "StayInterval",
    # Исключения
    "DomainException",
    "ConcurrencyException",
    "ConflictError",
    "NotFoundError",
    "RepositoryUnavailable",
    # Утилиты
    "check_out_for",
    "overlaps",
]
