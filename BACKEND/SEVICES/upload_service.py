# Руководство к файлу (SEVICES/upload_service.py)
# Назначение:
# - Общий конвейер загрузки для веб-формы и бота:
#   проверка размера -> выбор хранилища -> запись -> строка в реестре.
# Важно:
# - Размер проверяется до любой записи в хранилище.
# - Ключ объекта: <unix-время в мс>_<безопасное имя>, URL: https://<домен>/<ключ>.
# - Если строку реестра записать не удалось, записанная копия удаляется.

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from BACKEND.DATABASE.CACHE_MANAGER.files import FileMeta, FilesManager
from BACKEND.DATABASE.models import File
from BACKEND.SEVICES.errors import ConfigurationError, ValidationError
from BACKEND.SEVICES.retry import best_effort
from BACKEND.STORAGE.mime import format_size, guess_mime, sanitize_filename


logger = logging.getLogger("imgbed.upload")


@dataclass
class UploadRequest:
    data: bytes
    filename: str
    chat_id: str
    mime_type: Optional[str] = None
    storage_type: Optional[str] = None
    category_id: Optional[int] = None
    remark: Optional[str] = None


class UploadService:
    def __init__(self, ctx) -> None:
        self.ctx = ctx

    @property
    def max_size_bytes(self) -> int:
        return self.ctx.settings.max_size_bytes

    def check_size(self, size: Optional[int]) -> None:
        """ValidationError, если заявленный/фактический размер больше лимита."""

        if size is not None and int(size) > self.max_size_bytes:
            raise ValidationError(
                f"Файл слишком большой: {format_size(int(size))}, лимит {self.ctx.settings.max_size_mb} MB"
            )

    @staticmethod
    def make_key(filename: str) -> str:
        return f"{int(time.time() * 1000)}_{sanitize_filename(filename)}"

    async def store(self, session: AsyncSession, req: UploadRequest, domain: str) -> File:
        if not domain:
            raise ConfigurationError("Не задан публичный домен (IMGBED_DOMAIN)")
        if not req.data:
            raise ValidationError("Пустой файл")
        self.check_size(len(req.data))

        mime = guess_mime(req.filename, req.mime_type)
        storage_type = self.ctx.storage.effective_type(req.storage_type or self.ctx.default_storage)
        backend = self.ctx.storage.for_type(storage_type)
        key = self.make_key(req.filename)

        ref = await backend.put(req.data, key, mime)
        files = FilesManager(session, storage=self.ctx.storage, file_cache=self.ctx.file_cache)
        try:
            rec = await files.register(
                FileMeta(
                    url=f"https://{domain}/{key}",
                    backend_ref=ref.backend_ref,
                    message_ref=ref.message_ref,
                    file_name=sanitize_filename(req.filename),
                    file_size=len(req.data),
                    mime_type=mime,
                    storage_type=storage_type.value,
                    chat_id=req.chat_id,
                    category_id=req.category_id,
                    remark=req.remark,
                )
            )
            await session.commit()
        except Exception:
            await session.rollback()
            await best_effort(backend.delete(ref), f"cleanup of unregistered upload {key}")
            raise
        logger.info("Upload %s stored (%s, %s bytes) for chat %s", key, storage_type.value, len(req.data), req.chat_id)
        return rec
