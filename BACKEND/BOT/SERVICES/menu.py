"""Руководство к файлу (BACKEND/BOT/SERVICES/menu.py)
Назначение:
- Текст главного меню: текущее хранилище, категория, число и объём файлов
  чата, «уведомление дня» (загружается по notice_url).
- Кэши: готовое меню по ключу chat_id + storage_type (menu_cache),
  уведомление (notice_cache).
Важно:
- Меню чата сбрасывается при любой смене состояния/настроек этого чата.
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Optional

import httpx
from telegram import Message
from telegram.constants import ParseMode

from ..KEYBOARDS.common import main_menu_keyboard
from BACKEND.DATABASE.CACHE_MANAGER.category import CategoryManager
from BACKEND.DATABASE.CACHE_MANAGER.files import FilesManager
from BACKEND.STORAGE.base import StorageType
from BACKEND.STORAGE.mime import format_size


logger = logging.getLogger("imgbed.bot")

DEFAULT_NOTICE = (
    "➡️ Отправьте изображение или файл: бот вернёт прямую ссылку\n"
    "➡️ Все загрузки доступны в веб-админке: просмотр, удаление, категории"
)
_NOTICE_KEY = "notice"


def menu_cache_key(chat_id: str, storage_type: Optional[str]) -> str:
    return f"menu:{chat_id}:{storage_type or 'default'}"


def storage_title(storage_type: Optional[str]) -> str:
    if StorageType.parse(storage_type) is StorageType.OBJECT_STORE:
        return "Объектное хранилище R2"
    return "Канал Telegram"


class MenuService:
    def __init__(self, ctx) -> None:
        self.ctx = ctx

    def invalidate(self, chat_id: str) -> None:
        self.ctx.menu_cache.delete_prefix(f"menu:{chat_id}:")

    async def fetch_notice(self) -> str:
        cached = self.ctx.notice_cache.get(_NOTICE_KEY)
        if cached is not None:
            return cached
        url = self.ctx.settings.notice_url
        if not url:
            return DEFAULT_NOTICE
        try:
            resp = await self.ctx.http.get(url, timeout=5.0)
            resp.raise_for_status()
            text = resp.text.strip() or DEFAULT_NOTICE
        except httpx.HTTPError as exc:
            logger.warning("Notice fetch from %s failed: %s", url, exc)
            return DEFAULT_NOTICE
        self.ctx.notice_cache.set(_NOTICE_KEY, text)
        return text

    async def _db_part(self, session, setting) -> tuple[str, int, int]:
        name = "не выбрана"
        if setting.current_category_id is not None:
            cat = await CategoryManager(session).get_category(int(setting.current_category_id))
            if cat is not None:
                name = cat.name
        count, size = await FilesManager(session).stats(setting.chat_id)
        return name, count, size

    async def render(self, session, setting) -> str:
        key = menu_cache_key(setting.chat_id, setting.storage_type)
        cached = self.ctx.menu_cache.get(key)
        if cached is not None:
            return cached

        # Одна сессия БД не допускает параллельных запросов: параллелим только сеть
        (category_name, count, size), notice = await asyncio.gather(
            self._db_part(session, setting),
            self.fetch_notice(),
        )
        text = (
            "☁️ <b>imgbed</b>\n"
            f"📂 Хранилище: {storage_title(setting.storage_type)}\n"
            f"📁 Категория: {html.escape(category_name)}\n"
            f"📊 Загружено: {count} файлов\n"
            f"💾 Занято: {format_size(size)}\n"
            f"{html.escape(notice)}\n"
            "👇 Выберите действие:"
        )
        self.ctx.menu_cache.set(key, text)
        return text

    async def send(self, session, setting) -> Message:
        text = await self.render(session, setting)
        return await self.ctx.telegram.call(
            "send_message",
            chat_id=setting.chat_id,
            text=text,
            reply_markup=main_menu_keyboard(),
            parse_mode=ParseMode.HTML,
        )
