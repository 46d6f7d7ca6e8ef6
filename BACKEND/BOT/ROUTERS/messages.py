"""Руководство к файлу (BACKEND/BOT/ROUTERS/messages.py)
Назначение:
- Обработка свободного текста в зависимости от состояния диалога:
  имя новой категории, файл для переименования, новое имя, файл для удаления.
- Текст без ожидания - подсказка.
Важно:
- Ссылка/имя файла должны быть URL или содержать «.», иначе бот просит
  повторить и остаётся в том же состоянии.
- Обработчик выбирается по типу состояния (functools.singledispatch).
"""

from __future__ import annotations

import functools
import logging
from typing import List

from telegram.ext import BaseHandler, MessageHandler, filters

from ..KEYBOARDS.common import back_keyboard
from ..SERVICES.conversation import Conversation, bot_handler
from ..SERVICES.state import (
    AwaitingCategoryName,
    AwaitingDeleteTarget,
    AwaitingNewSuffix,
    AwaitingRenameTarget,
    DialogueState,
    Idle,
)
from BACKEND.DATABASE.CACHE_MANAGER.category import CategoryManager
from BACKEND.SEVICES.errors import NotFoundError, ValidationError


logger = logging.getLogger("imgbed.bot")


def looks_like_file_token(text: str) -> bool:
    t = text.strip()
    return t.startswith("http://") or t.startswith("https://") or "." in t


@functools.singledispatch
async def text_for_state(state: DialogueState, conv: Conversation) -> None:
    """Текст без ожидания ввода."""

    await conv.reply("Отправьте файл для загрузки или /start для меню.")


@text_for_state.register(AwaitingCategoryName)
async def category_name_entered(state: AwaitingCategoryName, conv: Conversation) -> None:
    cats = CategoryManager(conv.session)
    try:
        cat = await cats.create_category(conv.text)
    except ValidationError as exc:
        await conv.reset()
        await conv.reply(f"⚠️ {exc.message}")
        await conv.show_menu()
        return
    await conv.settings_manager().set_category(conv.setting, int(cat.id))
    await conv.set_state(Idle())
    await conv.reply(f"✅ Категория «{cat.name}» создана и выбрана")
    await conv.show_menu()


@text_for_state.register(AwaitingRenameTarget)
async def rename_target_entered(state: AwaitingRenameTarget, conv: Conversation) -> None:
    if not looks_like_file_token(conv.text):
        await conv.reply("⚠️ Пришлите ссылку на файл или имя файла с расширением", reply_markup=back_keyboard())
        return
    rec = await conv.files().find_by_token(conv.text, chat_id=conv.chat_id)
    if rec is None:
        await conv.reply("⚠️ Файл не найден, попробуйте ещё раз", reply_markup=back_keyboard())
        return
    await conv.set_state(AwaitingNewSuffix(editing_file_id=str(rec.id)))
    await conv.reply(
        f"Файл: {rec.file_name or rec.url}\nВведите новое имя без расширения:",
        reply_markup=back_keyboard(),
    )


@text_for_state.register(AwaitingNewSuffix)
async def new_suffix_entered(state: AwaitingNewSuffix, conv: Conversation) -> None:
    files = conv.files()
    rec = None
    if state.editing_file_id.isdigit():
        rec = await files.get_file(int(state.editing_file_id))
    if rec is None or str(rec.chat_id) != conv.chat_id:
        raise NotFoundError("Файл для переименования больше не существует")

    new_url = await files.rename(rec, conv.text)
    await conv.set_state(Idle())
    await conv.reply(f"✅ Файл переименован\n{new_url}")
    await conv.show_menu()


@text_for_state.register(AwaitingDeleteTarget)
async def delete_target_entered(state: AwaitingDeleteTarget, conv: Conversation) -> None:
    if not looks_like_file_token(conv.text):
        await conv.reply("⚠️ Пришлите ссылку на файл или имя файла с расширением", reply_markup=back_keyboard())
        return
    files = conv.files()
    rec = await files.delete_by_token(conv.text, chat_id=conv.chat_id)
    await conv.session.commit()
    await conv.set_state(Idle())
    await conv.reply(f"🗑️ Файл удалён: {rec.file_name or rec.url}")
    await conv.show_menu()


async def text_entered(conv: Conversation) -> None:
    if conv.text:
        await text_for_state(conv.state, conv)


def handlers() -> List[BaseHandler]:
    # текст, не ставший командой (в том числе неизвестные /команды)
    return [MessageHandler(filters.TEXT & filters.UpdateType.MESSAGE, bot_handler(text_entered))]
