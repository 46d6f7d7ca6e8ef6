# Руководство к файлу (STORAGE/selector.py)
# Назначение:
# - Выбор адаптера по типу хранилища (из формы или настроек пользователя).
# - Если объектное хранилище не настроено, прозрачно используется канал Telegram.

from __future__ import annotations

import logging
from typing import Optional

from .base import StorageBackend, StorageType, StoredRef


logger = logging.getLogger("imgbed.storage")


class StorageSelector:
    def __init__(self, chat_store: StorageBackend, object_store: Optional[StorageBackend] = None) -> None:
        self.chat_store = chat_store
        self.object_store = object_store

    @property
    def object_store_available(self) -> bool:
        return self.object_store is not None

    def effective_type(self, requested: StorageType | str | None) -> StorageType:
        st = requested if isinstance(requested, StorageType) else StorageType.parse(requested)
        if st is StorageType.OBJECT_STORE and self.object_store is None:
            logger.info("Object store is not configured, falling back to chat store")
            return StorageType.CHAT_STORE
        return st

    def for_type(self, requested: StorageType | str | None) -> StorageBackend:
        st = self.effective_type(requested)
        if st is StorageType.OBJECT_STORE and self.object_store is not None:
            return self.object_store
        return self.chat_store

    def for_ref(self, ref: StoredRef) -> Optional[StorageBackend]:
        """Адаптер, где лежит уже сохранённый файл (без фолбэка)."""

        if ref.storage_type is StorageType.OBJECT_STORE:
            return self.object_store
        return self.chat_store
