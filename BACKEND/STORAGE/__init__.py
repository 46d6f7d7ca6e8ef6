# Руководство к пакету (STORAGE)
# Назначение: адаптеры хранилища файлов (бакет S3/R2 и канал Telegram) и их выбор.

from .base import StorageBackend, StorageType, StoredObject, StoredRef
from .object_store import ObjectStoreBackend
from .selector import StorageSelector
from .telegram_store import TelegramStoreBackend

__all__ = [
    "StorageBackend",
    "StorageType",
    "StoredObject",
    "StoredRef",
    "ObjectStoreBackend",
    "StorageSelector",
    "TelegramStoreBackend",
]
