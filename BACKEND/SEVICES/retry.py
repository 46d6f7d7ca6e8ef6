# Руководство к файлу (SEVICES/retry.py)
# Назначение:
# - Повтор асинхронных вызовов с ограниченной экспоненциальной задержкой
#   (база 1 с, потолок 5 с, 3 попытки) для Telegram API и самовосстановления схемы.
# - best_effort(): некритичные побочные действия (подтверждение callback,
#   редактирование/удаление служебных сообщений) - ошибка логируется и не
#   пробрасывается вызывающему.

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar


T = TypeVar("T")

logger = logging.getLogger("imgbed.retry")

DEFAULT_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 5.0


def backoff_delay(attempt: int, base: float = DEFAULT_BASE_DELAY, cap: float = DEFAULT_MAX_DELAY) -> float:
    """Задержка перед повтором после попытки номер attempt (с 1)."""

    return min(base * (2 ** (attempt - 1)), cap)


class RetryAfter(Exception):
    """Сервис попросил подождать (HTTP 429 / retry_after)."""

    def __init__(self, seconds: float, message: str = "rate limited") -> None:
        super().__init__(message)
        self.seconds = seconds


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call",
) -> T:
    """Выполнить fn() с повторами. Последняя ошибка пробрасывается как есть."""

    if attempts < 1:
        raise ValueError("attempts must be positive")
    for attempt in range(1, attempts):
        try:
            return await fn()
        except retry_on as exc:
            if isinstance(exc, RetryAfter):
                delay = min(max(exc.seconds, 0.0), max_delay)
            else:
                delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning("%s failed (attempt %s/%s): %s; retry in %.1fs", label, attempt, attempts, exc, delay)
            await sleep(delay)
    # последняя попытка: ошибка уходит вызывающему как есть
    return await fn()


async def best_effort(coro: Awaitable[T], what: str) -> Optional[T]:
    """Выполнить некритичное действие: при ошибке только лог."""

    try:
        return await coro
    except Exception as exc:  # noqa: BLE001
        logger.warning("non-critical %s failed: %s", what, exc)
        return None
