"""Руководство к файлу (BACKEND/BOT/ROUTERS/media.py)
Назначение:
- Загрузка вложений из чата: фото, документ, видео, аудио, голосовое,
  видеосообщение, анимация, стикер.
- Сценарий: служебное сообщение «загружаю» -> get_file и проверка размера ->
  скачивание -> общий конвейер загрузки (SEVICES/upload_service.py) ->
  удаление служебного сообщения -> ссылка и QR-код.
Важно:
- Вложение обрабатывается всегда, независимо от ожидания текста;
  само ожидание при этом не меняется.
"""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Tuple
from urllib.parse import quote

from telegram import Message
from telegram.ext import BaseHandler, MessageHandler, filters

from ..SERVICES.conversation import Conversation, bot_handler
from ..SERVICES.telegram_api import TelegramApiError
from BACKEND.SEVICES.errors import ValidationError
from BACKEND.SEVICES.retry import best_effort
from BACKEND.SEVICES.upload_service import UploadRequest, UploadService
from BACKEND.STORAGE.mime import extension_for_mime, format_size, guess_mime


logger = logging.getLogger("imgbed.bot")

MEDIA_FIELDS = ("photo", "document", "video", "audio", "voice", "video_note", "animation", "sticker")

MEDIA_FILTER = (
    filters.PHOTO
    | filters.Document.ALL
    | filters.VIDEO
    | filters.AUDIO
    | filters.VOICE
    | filters.VIDEO_NOTE
    | filters.ANIMATION
    | filters.Sticker.ALL
)

QR_SERVICE = "https://api.qrserver.com/v1/create-qr-code/?size=300x300&data="


def pick_attachment(message: Message) -> Tuple[Any, str, Optional[str]]:
    """(вложение PTB, имя файла, MIME) для первого вложения сообщения."""

    stamp = int(time.time() * 1000)
    if message.photo:
        best = max(message.photo, key=lambda p: (p.file_size or 0, p.width * p.height))
        return best, f"photo_{stamp}.jpg", "image/jpeg"

    for field in MEDIA_FIELDS[1:]:
        obj = getattr(message, field, None)
        if obj is None:
            continue
        mime = getattr(obj, "mime_type", None)
        if field == "sticker":
            mime = mime or ("video/webm" if obj.is_video else "image/webp")
        elif field == "video_note":
            mime = mime or "video/mp4"
        elif field == "voice":
            mime = mime or "audio/ogg"
        name = getattr(obj, "file_name", None)
        if not name:
            ext = extension_for_mime(mime)
            title = getattr(obj, "title", None)
            if field == "audio" and title:
                name = f"{title}.{ext}"
            elif field == "voice":
                name = f"voice_message_{stamp}.{ext}"
            else:
                name = f"{field}_{stamp}.{ext}"
        return obj, name, guess_mime(name, mime)
    raise ValidationError("Сообщение не содержит файла")


async def upload_media(conv: Conversation) -> None:
    attachment, filename, mime = pick_attachment(conv.message)
    uploader = UploadService(conv.app)

    # Размер из сообщения известен до get_file: отсекаем заведомо большие файлы сразу
    uploader.check_size(attachment.file_size)

    progress = await best_effort(conv.reply(f"⏳ Загружаю {filename}..."), "progress message")
    try:
        try:
            info = await conv.telegram.run(attachment.get_file)
        except TelegramApiError as exc:
            if "too big" in exc.description.lower():
                raise ValidationError(f"Файл слишком большой, лимит {conv.app.settings.max_size_mb} MB")
            raise
        uploader.check_size(info.file_size)
        if not info.file_path:
            raise ValidationError("Telegram не отдал путь к файлу")

        data = await conv.telegram.download(info)
        rec = await uploader.store(
            conv.session,
            UploadRequest(
                data=data,
                filename=filename,
                chat_id=conv.chat_id,
                mime_type=mime,
                storage_type=conv.setting.storage_type,
                category_id=conv.setting.current_category_id,
            ),
            conv.domain,
        )
    finally:
        if progress is not None:
            await best_effort(
                conv.telegram.call("delete_message", chat_id=conv.chat_id, message_id=progress.message_id),
                "delete progress message",
            )

    conv.menu.invalidate(conv.chat_id)
    await conv.reply(
        f"✅ Файл загружен\n📄 {rec.file_name}\n💾 {format_size(rec.file_size)}\n🔗 {rec.url}",
    )
    await best_effort(
        conv.telegram.call("send_photo", chat_id=conv.chat_id, photo=QR_SERVICE + quote(rec.url, safe="")),
        "QR code",
    )


def handlers() -> List[BaseHandler]:
    return [MessageHandler(MEDIA_FILTER & filters.UpdateType.MESSAGE, bot_handler(upload_media))]
