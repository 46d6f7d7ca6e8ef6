"""Руководство к файлу (BACKEND/BOT/dispatcher.py)
Назначение:
- Точка входа обработки обновлений Telegram (вызывается из POST /webhook):
  telegram.ext.Application без Updater, обновления подаются через
  Update.de_json() + process_update().
- Группа -1 (gate): отсекает неподдерживаемые обновления, группы/каналы и
  чужие чаты до обработчиков группы 0 (BOT/ROUTERS).
Важно:
- Обрабатываются только message и callback_query; edited_message и прочие
  типы обновлений молча пропускаются.
- Application инициализируется лениво при первом обновлении
  (getMe нужен CommandHandler для разбора /cmd@bot).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from telegram import Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import Application, ApplicationBuilder, ApplicationHandlerStop, ContextTypes, TypeHandler

from . import ROUTERS
from .SERVICES.conversation import webhook_domain
from BACKEND.SEVICES.errors import UpstreamError, ValidationError
from BACKEND.SEVICES.retry import best_effort


logger = logging.getLogger("imgbed.bot")

NO_ACCESS_TEXT = "⛔ У вас нет доступа к этому боту"
GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP, ChatType.CHANNEL)


async def gate(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Пропустить дальше только личные сообщения и кнопки из разрешённых чатов."""

    ctx = context.bot_data["ctx"]
    if update.message is None and update.callback_query is None:
        logger.debug("Ignoring update %s of unsupported type", update.update_id)
        raise ApplicationHandlerStop
    chat = update.effective_chat
    if chat is None:
        logger.debug("Ignoring update %s without chat", update.update_id)
        raise ApplicationHandlerStop
    if chat.type in GROUP_CHAT_TYPES:
        logger.debug("Ignoring %s message from %s", chat.type, chat.id)
        raise ApplicationHandlerStop
    if str(chat.id) not in ctx.settings.allowed_chat_ids:
        logger.warning("Chat %s is not in the allow-list", chat.id)
        await best_effort(ctx.telegram.call("send_message", chat_id=chat.id, text=NO_ACCESS_TEXT), "no-access reply")
        raise ApplicationHandlerStop


async def log_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error in bot handler", exc_info=context.error)


def build_application(ctx) -> Application:
    application = ApplicationBuilder().bot(ctx.telegram.require_bot()).updater(None).build()
    application.bot_data["ctx"] = ctx
    application.add_handler(TypeHandler(Update, gate), group=-1)
    application.add_handlers(ROUTERS.handlers())
    application.add_error_handler(log_error)
    return application


class BotDispatcher:
    def __init__(self, ctx, application: Optional[Application] = None) -> None:
        self.ctx = ctx
        self._application = application
        self._started = False
        self._start_lock = asyncio.Lock()

    @property
    def application(self) -> Application:
        if self._application is None:
            self._application = build_application(self.ctx)
        return self._application

    async def start(self) -> None:
        async with self._start_lock:
            if not self._started:
                try:
                    await self.application.initialize()
                except TelegramError as exc:
                    raise UpstreamError(f"Telegram getMe: {exc}") from exc
                self._started = True

    async def stop(self) -> None:
        if self._started:
            await self.application.shutdown()
            self._started = False

    async def handle_update(self, payload: Dict[str, Any], domain: str) -> None:
        await self.start()
        try:
            update = Update.de_json(payload, self.application.bot)
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Некорректное обновление Telegram: {exc}") from exc

        token = webhook_domain.set(domain)
        try:
            await self.application.process_update(update)
        finally:
            webhook_domain.reset(token)
