"""Руководство к файлу (BACKEND/BOT/ROUTERS/commands.py)
Назначение:
- Команды бота: /start и /menu (сброс ожидания и главное меню), /help.
"""

from __future__ import annotations

from typing import List

from telegram.ext import BaseHandler, CommandHandler, filters

from ..SERVICES.conversation import Conversation, bot_handler


HELP_TEXT = (
    "Отправьте фото, видео, аудио или документ: файл будет сохранён, "
    "а бот пришлёт прямую ссылку.\n"
    "/start - главное меню\n"
    "/help - эта подсказка"
)


async def cmd_start(conv: Conversation) -> None:
    """Любое ожидание ввода сбрасывается, пользователь видит меню."""

    await conv.reset()
    await conv.show_menu()


async def cmd_help(conv: Conversation) -> None:
    await conv.reply(HELP_TEXT)


def handlers() -> List[BaseHandler]:
    # только новые сообщения: правки старых не считаются командами
    only_new = filters.UpdateType.MESSAGE
    return [
        CommandHandler(["start", "menu"], bot_handler(cmd_start), filters=only_new),
        CommandHandler("help", bot_handler(cmd_help), filters=only_new),
    ]
