# Руководство к файлу (STORAGE/telegram_store.py)
# Назначение:
# - Адаптер «чат-хранилища»: файл живёт вложением сообщения в канале Telegram.
# - put(): метод Bot (send_photo/send_video/send_audio/send_document) выбирается
#   по MIME, при отказе API - ровно одна повторная попытка через send_document.
# - get(): каждый раз get_file + скачивание (ссылки Telegram истекают).
# - delete(): delete_message; «сообщение не найдено» считается успехом.

from __future__ import annotations

import logging
from typing import Optional

from telegram import Message

from .base import StorageType, StoredObject, StoredRef
from .mime import UploadKind, classify_upload_kind, format_size
from BACKEND.BOT.SERVICES.telegram_api import TelegramApiError, TelegramGateway, file_id_of
from BACKEND.SEVICES.errors import ConfigurationError, UpstreamError


logger = logging.getLogger("imgbed.storage")

_GONE_MARKERS = ("message to delete not found", "message can't be deleted", "message_id_invalid")


class TelegramStoreBackend:
    storage_type = StorageType.CHAT_STORE

    def __init__(self, telegram: TelegramGateway, chat_id: str) -> None:
        self.telegram = telegram
        self.chat_id = chat_id

    def _require_chat(self) -> str:
        if not self.chat_id:
            raise ConfigurationError("Не задан канал-хранилище (IMGBED_TG_STORAGE_CHAT_ID)")
        return self.chat_id

    async def _send(self, kind: UploadKind, data: bytes, name: str, mime_type: str) -> Message:
        return await self.telegram.call(
            kind.method,
            chat_id=self._require_chat(),
            caption=f"File: {name}\nType: {mime_type}\nSize: {format_size(len(data))}",
            filename=name,
            **{kind.field: data},
        )

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredRef:
        kind = classify_upload_kind(mime_type)
        try:
            message = await self._send(kind, data, name, mime_type)
        except TelegramApiError as exc:
            if kind is UploadKind.DOCUMENT:
                raise
            logger.warning("%s rejected for %s (%s), retrying as document", kind.method, name, exc.description)
            message = await self._send(UploadKind.DOCUMENT, data, name, mime_type)

        file_id = file_id_of(message)
        if not file_id:
            raise UpstreamError("Telegram не вернул file_id загруженного файла")
        logger.info("Stored %s in chat %s as message %s", name, self.chat_id, message.message_id)
        return StoredRef(backend_ref=file_id, message_ref=int(message.message_id), storage_type=self.storage_type)

    async def get(self, ref: StoredRef) -> Optional[StoredObject]:
        try:
            info = await self.telegram.call("get_file", ref.backend_ref)
        except TelegramApiError as exc:
            logger.warning("getFile %s failed: %s", ref.backend_ref, exc.description)
            return None
        if not info.file_path:
            return None
        return StoredObject(data=await self.telegram.download(info))

    async def delete(self, ref: StoredRef) -> bool:
        if ref.message_ref is None or int(ref.message_ref) <= 0:
            return True
        try:
            await self.telegram.call("delete_message", chat_id=self._require_chat(), message_id=int(ref.message_ref))
        except TelegramApiError as exc:
            if any(m in exc.description.lower() for m in _GONE_MARKERS):
                return True
            logger.warning("deleteMessage %s failed: %s", ref.message_ref, exc.description)
            return False
        return True
