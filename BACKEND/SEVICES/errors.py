# Руководство к файлу (SEVICES/errors.py)
# Назначение:
# - Таксономия ошибок шлюза: конфигурация, схема БД, внешние сервисы,
#   валидация ввода, отсутствие сущности.
# - Каждая ошибка знает свой HTTP-статус; HTTP-слой и бот переводят их
#   в JSON {status: 0, msg} или в сообщение чата соответственно.

from __future__ import annotations


class GatewayError(Exception):
    """Базовая ошибка шлюза."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Не задана обязательная настройка (токен, бакет, логин/пароль)."""

    status_code = 500


class SchemaError(GatewayError):
    """Схему БД не удалось привести в рабочее состояние после всех попыток."""

    status_code = 500


class UpstreamError(GatewayError):
    """Вызов Telegram Bot API или объектного хранилища завершился ошибкой."""

    status_code = 502


class ValidationError(GatewayError):
    """Некорректный ввод: пустое имя, слишком большой файл, неверный id."""

    status_code = 400


class NotFoundError(GatewayError):
    """Файл или категория не найдены."""

    status_code = 404


class ForbiddenError(GatewayError):
    """Операция запрещена (например, удаление категории по умолчанию)."""

    status_code = 403


__all__ = [
    "GatewayError",
    "ConfigurationError",
    "SchemaError",
    "UpstreamError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
]
