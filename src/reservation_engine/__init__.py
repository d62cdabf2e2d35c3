"""
Движок допуска бронирований юнитов.

Решает, можно ли принять новое бронирование или продление существующего,
и поддерживает набор броней без пересечений по юниту и по гостю.
"""

__version__ = "0.1.0"
