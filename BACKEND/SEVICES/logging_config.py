# Руководство к файлу (SEVICES/logging_config.py)
# Назначение:
# - Централизованная настройка логирования для бэкенда imgbed (HTTP-слой,
#   бот, хранилища, БД).
# - Определяет формат логов и базовые именованные логгеры `imgbed.*`.
# Важно:
# - Модуль не зависит от FastAPI, его можно вызывать как из веб-приложения,
#   так и из скриптов (регистрация webhook, ручной запуск миграции схемы).

from __future__ import annotations

import logging
import sys
from typing import Iterable


BASE_LOGGERS = (
    "imgbed.db",
    "imgbed.storage",
    "imgbed.bot",
    "imgbed.telegram",
    "imgbed.upload",
    "imgbed.fastapi",
    "imgbed.fastapi.auth",
    "imgbed.fastapi.upload",
    "imgbed.fastapi.admin",
    "imgbed.fastapi.files",
    "imgbed.fastapi.webhook",
    "imgbed.fastapi.system",
)


def _configure_handler(formatter: logging.Formatter) -> logging.Handler:
    """Создаёт stdout-обработчик с заданным форматтером."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: int = logging.INFO, extra_loggers: Iterable[str] | None = None) -> None:
    """Настраивает базовое логирование для imgbed.

    Формат сообщения:
      [2025-01-01 10:00:00] [INFO] [module:function:line] message

    Повторный вызов функции безопасен: обработчики root-логгера будут очищены
    и заново инициализированы.
    """

    formatter = logging.Formatter(
        fmt="[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level)

    # Удаляем старые обработчики, чтобы избежать дублирования
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_configure_handler(formatter))

    for name in (*BASE_LOGGERS, *(extra_loggers or ())):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True  # отдаём в root, который пишет в stdout


__all__ = ["setup_logging"]
