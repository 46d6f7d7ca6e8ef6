# Руководство к файлу (SEVICES/__init__.py)
# Назначение:
# - Объявляет пакет BACKEND.SEVICES (сквозные сервисы imgbed).
# - Экспортирует функцию настройки логирования.
# Важно:
# - Остальные модули импортируются явно (BACKEND.SEVICES.errors и т.д.),
#   чтобы пакет можно было подключать из слоя БД и хранилищ без циклов.

from __future__ import annotations

from .logging_config import setup_logging

__all__ = [
    "setup_logging",
]
