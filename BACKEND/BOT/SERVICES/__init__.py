"""Руководство к пакету (BACKEND/BOT/SERVICES)
Назначение:
- Содержит вспомогательные сервисы для бота imgbed:
  - telegram_api - telegram.Bot (python-telegram-bot) с повторами и ошибками шлюза;
  - state - состояния диалога и их хранение в user_settings;
  - locks - блокировка по chat_id;
  - conversation, menu - контекст обработчика и главное меню (импортируются явно).
"""

from . import locks, state, telegram_api

__all__ = [
    "locks",
    "state",
    "telegram_api",
]
