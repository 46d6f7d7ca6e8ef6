# Руководство к файлу (SEVICES/cache.py)
# Назначение:
# - In-memory кэш с TTL (get/set/delete) для отдачи файлов, меню бота,
#   уведомления дня и списка фонов Bing.
# Важно:
# - Экземпляры создаются вместе с приложением (SEVICES/context.py) и живут
#   столько же, сколько процесс; глобальных синглтонов нет.
# - Кэш рекомендательный: промах всегда означает пересчёт, а не ошибку.
# - max_entries ограничивает размер: при переполнении вытесняется давно не
#   читанная запись (LRU). Просроченные записи вычищаются на каждом set().

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar


V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    def __init__(
        self,
        ttl_sec: float,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._store: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._ttl = ttl_sec
        self._max_entries = max_entries
        self._clock = clock

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> Optional[int]:
        return self._max_entries

    def get(self, key: str) -> Optional[V]:
        e = self._store.get(key)
        if not e:
            return None
        if e.expires_at <= self._clock():
            self._store.pop(key, None)
            return None
        self._store.move_to_end(key)
        return e.value

    def set(self, key: str, value: V) -> None:
        now = self._clock()
        self._sweep(now)
        self._store[key] = CacheEntry(value=value, expires_at=now + self._ttl)
        self._store.move_to_end(key)
        if self._max_entries is not None:
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)

    def _sweep(self, now: float) -> int:
        expired = [k for k, e in self._store.items() if e.expires_at <= now]
        for k in expired:
            del self._store[k]
        return len(expired)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """Удалить все ключи с префиксом (например, все меню одного чата)."""

        keys = [k for k in self._store if k.startswith(prefix)]
        for k in keys:
            del self._store[k]
        return len(keys)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: Any) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._store)
