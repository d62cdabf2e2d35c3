"""
Модуль контекста бронирования (Booking Context).

Отвечает за допуск бронирований юнитов, включая:
- Создание и продление бронирований
- Проверку пересечения периодов проживания по юниту и по гостю
- Сериализацию решений о допуске
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    'domain',
    'application',
    'infrastructure',
    'interfaces',
]
