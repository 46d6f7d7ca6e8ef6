"""Руководство к файлу (BACKEND/BOT/ROUTERS/callbacks.py)
Назначение:
- Обработчики нажатий inline-кнопок главного меню и вложенных списков.
Важно:
- Перед обработчиком callback подтверждается, а ожидание ввода
  сбрасывается, если кнопка к нему не относится (callback_matches_state).
- Неизвестная кнопка показывает главное меню.
"""

from __future__ import annotations

import functools
import html
import logging
import re
from typing import List

from telegram.ext import BaseHandler, CallbackQueryHandler

from ..KEYBOARDS.common import (
    CB_BACK,
    CB_CREATE_CATEGORY,
    CB_DELETE_INPUT,
    CB_LIST_CATEGORIES,
    CB_OBJECT_STATS,
    CB_RECENT_FILES,
    CB_RENAME_FILE,
    CB_RENAME_INPUT,
    CB_RENAME_PICK,
    CB_SET_CATEGORY,
    CB_SWITCH_STORAGE,
    back_keyboard,
    categories_keyboard,
    files_keyboard,
)
from ..SERVICES.conversation import Conversation, ConversationHandler, PTBCallback, bot_handler
from ..SERVICES.state import (
    AwaitingCategoryName,
    AwaitingDeleteTarget,
    AwaitingNewSuffix,
    AwaitingRenameTarget,
    DialogueState,
)
from BACKEND.DATABASE.CACHE_MANAGER.category import CategoryManager
from BACKEND.SEVICES.errors import NotFoundError
from BACKEND.STORAGE.base import StorageType
from BACKEND.STORAGE.mime import format_size


logger = logging.getLogger("imgbed.bot")


def callback_matches_state(data: str, state: DialogueState) -> bool:
    """Кнопка продолжает текущее ожидание и не должна его сбрасывать."""

    if isinstance(state, AwaitingCategoryName):
        return data == CB_CREATE_CATEGORY
    if isinstance(state, AwaitingDeleteTarget):
        return data == CB_DELETE_INPUT
    if isinstance(state, AwaitingRenameTarget):
        return data == CB_RENAME_INPUT
    if isinstance(state, AwaitingNewSuffix):
        return data.startswith(CB_RENAME_FILE)
    return True


async def back_to_panel(conv: Conversation) -> None:
    await conv.reset()
    await conv.show_menu()


async def switch_storage(conv: Conversation) -> None:
    current = StorageType.parse(conv.setting.storage_type)
    wanted = StorageType.CHAT_STORE if current is StorageType.OBJECT_STORE else StorageType.OBJECT_STORE
    effective = conv.app.storage.effective_type(wanted)
    if effective is not wanted:
        await conv.reply("⚠️ Объектное хранилище не настроено, файлы сохраняются в канал Telegram")
    conv.menu.invalidate(conv.chat_id)
    await conv.settings_manager().set_storage(conv.setting, effective.value)
    await conv.session.commit()
    await conv.show_menu()


async def list_categories(conv: Conversation) -> None:
    cats = await CategoryManager(conv.session).list_categories()
    await conv.reply(
        "📋 Выберите категорию:",
        reply_markup=categories_keyboard(cats, conv.setting.current_category_id),
    )


async def set_category(conv: Conversation) -> None:
    raw = conv.callback_data[len(CB_SET_CATEGORY):]
    cat = await CategoryManager(conv.session).get_category(int(raw)) if raw.isdigit() else None
    if cat is None:
        raise NotFoundError("Категория не найдена")
    await conv.settings_manager().set_category(conv.setting, int(cat.id))
    await conv.session.commit()
    conv.menu.invalidate(conv.chat_id)
    await conv.reply(f"✅ Текущая категория: {cat.name}")
    await conv.show_menu()


async def create_category(conv: Conversation) -> None:
    await conv.set_state(AwaitingCategoryName())
    await conv.reply("📝 Введите название новой категории:", reply_markup=back_keyboard())


async def object_store_stats(conv: Conversation) -> None:
    count, size = await conv.files().stats(conv.chat_id, StorageType.OBJECT_STORE.value)
    await conv.reply(
        "📊 Объектное хранилище R2\n"
        f"📁 Файлов: {count}\n"
        f"💾 Объём: {format_size(size)}"
    )


async def recent_files(conv: Conversation) -> None:
    files = await conv.files().recent(conv.chat_id, limit=10)
    if not files:
        await conv.reply("⚠️ Вы ещё ничего не загружали")
        return
    lines = ["📂 Последние файлы:"]
    for i, f in enumerate(files, 1):
        when = f.created_at.strftime("%Y-%m-%d %H:%M") if f.created_at else ""
        lines.append(f"{i}. <a href=\"{html.escape(f.url)}\">{html.escape(f.file_name or f.url)}</a> {when}")
    await conv.reply("\n".join(lines), reply_markup=back_keyboard(), parse_mode="HTML")


async def rename_pick(conv: Conversation) -> None:
    files = await conv.files().recent(conv.chat_id, limit=5)
    if not files:
        await conv.reply("⚠️ Вы ещё ничего не загружали")
        return
    await conv.reply("📝 Выберите файл для переименования:", reply_markup=files_keyboard(files))


async def rename_file_picked(conv: Conversation) -> None:
    raw = conv.callback_data[len(CB_RENAME_FILE):]
    rec = await conv.files().get_file(int(raw)) if raw.isdigit() else None
    if rec is None or str(rec.chat_id) != conv.chat_id:
        raise NotFoundError("Файл не найден")
    await conv.set_state(AwaitingNewSuffix(editing_file_id=str(rec.id)))
    await conv.reply(
        f"Файл: {rec.file_name or rec.url}\nВведите новое имя без расширения:",
        reply_markup=back_keyboard(),
    )


async def rename_input(conv: Conversation) -> None:
    await conv.set_state(AwaitingRenameTarget())
    await conv.reply("✏️ Пришлите ссылку или имя файла, который нужно переименовать:", reply_markup=back_keyboard())


async def delete_input(conv: Conversation) -> None:
    await conv.set_state(AwaitingDeleteTarget())
    await conv.reply("🗑️ Пришлите ссылку или имя файла, который нужно удалить:", reply_markup=back_keyboard())


async def unknown_button(conv: Conversation) -> None:
    logger.info("Unknown callback %r from %s", conv.callback_data, conv.chat_id)
    await conv.show_menu()


def pressed(fn: ConversationHandler) -> PTBCallback:
    """Подтвердить нажатие и сбросить чужое ожидание до вызова обработчика."""

    @functools.wraps(fn)
    async def handler(conv: Conversation) -> None:
        await conv.answer_callback()
        if not callback_matches_state(conv.callback_data, conv.state):
            await conv.reset()
        await fn(conv)

    return bot_handler(handler)


_EXACT = {
    CB_BACK: back_to_panel,
    CB_SWITCH_STORAGE: switch_storage,
    CB_LIST_CATEGORIES: list_categories,
    CB_CREATE_CATEGORY: create_category,
    CB_OBJECT_STATS: object_store_stats,
    CB_RECENT_FILES: recent_files,
    CB_RENAME_PICK: rename_pick,
    CB_RENAME_INPUT: rename_input,
    CB_DELETE_INPUT: delete_input,
}
_PREFIXED = {
    CB_SET_CATEGORY: set_category,
    CB_RENAME_FILE: rename_file_picked,
}


def handlers() -> List[BaseHandler]:
    out: List[BaseHandler] = [
        CallbackQueryHandler(pressed(fn), pattern=f"^{re.escape(data)}$") for data, fn in _EXACT.items()
    ]
    out += [CallbackQueryHandler(pressed(fn), pattern=f"^{re.escape(prefix)}") for prefix, fn in _PREFIXED.items()]
    # без pattern: всё, что не разобрали выше
    out.append(CallbackQueryHandler(pressed(unknown_button)))
    return out
