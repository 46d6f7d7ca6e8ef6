# Руководство к файлу (STORAGE/base.py)
# Назначение:
# - Общий контракт адаптеров хранилища: put / get / delete.
# - Типы ссылок на содержимое (StoredRef) и прочитанного объекта (StoredObject).
# Важно:
# - Адаптеры не хранят состояния, всё состояние живёт во внешних сервисах
#   (бакет S3/R2, канал Telegram) и в таблице files.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from BACKEND.DATABASE.models import NO_MESSAGE_REF


class StorageType(str, Enum):
    """Тип хранилища в том виде, в каком он лежит в БД."""

    OBJECT_STORE = "r2"
    CHAT_STORE = "telegram"

    @classmethod
    def parse(cls, value: Optional[str], default: "StorageType | None" = None) -> "StorageType":
        """Разобрать значение из БД/формы; неизвестное -> default (или chat-store)."""

        if value:
            v = value.strip().lower()
            if v in ("r2", "s3", "object-store", "object_store"):
                return cls.OBJECT_STORE
            if v in ("telegram", "tg", "chat-store", "chat_store"):
                return cls.CHAT_STORE
        return default or cls.CHAT_STORE


@dataclass(frozen=True)
class StoredRef:
    """Ссылка бэкенда на содержимое.

    backend_ref - ключ объекта в бакете или file_id Telegram;
    message_ref - id сообщения в канале-хранилище (NO_MESSAGE_REF для бакета).
    """

    backend_ref: str
    message_ref: int = NO_MESSAGE_REF
    storage_type: StorageType = StorageType.OBJECT_STORE


@dataclass
class StoredObject:
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@runtime_checkable
class StorageBackend(Protocol):
    storage_type: StorageType

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredRef:
        ...

    async def get(self, ref: StoredRef) -> Optional[StoredObject]:
        ...

    async def delete(self, ref: StoredRef) -> bool:
        ...
