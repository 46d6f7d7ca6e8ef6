"""Руководство к файлу (BACKEND/BOT/SERVICES/conversation.py)
Назначение:
- Conversation - контекст одного входящего обновления Telegram для
  обработчиков: чат, настройки пользователя, сессия БД, текущее состояние.
- bot_handler() превращает обработчик Conversation в callback для
  python-telegram-bot: блокировка чата, сессия БД, настройки чата, перевод
  ошибок шлюза в сообщения пользователю.
- Смена состояния сразу сохраняется и коммитится: следующее сообщение того
  же чата видит актуальное состояние.
Важно:
- При любой завершающей ошибке ожидание ввода сбрасывается, чтобы
  пользователь не застрял в состоянии без ответа.
- Домен для ссылок кладёт в webhook_domain маршрут POST /webhook перед
  process_update(); обработчики PTB выполняются в той же задаче.
"""

from __future__ import annotations

import functools
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from telegram import CallbackQuery, InlineKeyboardMarkup, LinkPreviewOptions, Message, Update
from telegram.ext import ContextTypes

from .menu import MenuService
from .state import DialogueState, Idle, decode_state, encode_state
from BACKEND.DATABASE.CACHE_MANAGER.files import FilesManager
from BACKEND.DATABASE.CACHE_MANAGER.user_setting import UserSettingManager
from BACKEND.DATABASE.models import UserSetting
from BACKEND.SEVICES.errors import GatewayError
from BACKEND.SEVICES.retry import best_effort


logger = logging.getLogger("imgbed.bot")

webhook_domain: ContextVar[str] = ContextVar("imgbed_webhook_domain", default="")

_NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


@dataclass
class Conversation:
    app: Any  # SEVICES.context.AppContext
    session: AsyncSession
    chat_id: str
    setting: UserSetting
    domain: str
    message: Optional[Message] = None
    text: str = ""
    callback_query: Optional[CallbackQuery] = None

    @property
    def state(self) -> DialogueState:
        return decode_state(self.setting.waiting_for, self.setting.editing_file_id)

    @property
    def callback_data(self) -> str:
        if self.callback_query is None:
            return ""
        return self.callback_query.data or ""

    @property
    def telegram(self):
        return self.app.telegram

    @property
    def menu(self) -> MenuService:
        return MenuService(self.app)

    def files(self) -> FilesManager:
        return FilesManager(self.session, storage=self.app.storage, file_cache=self.app.file_cache)

    def settings_manager(self) -> UserSettingManager:
        return UserSettingManager(self.session)

    async def reply(
        self,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
        parse_mode: Optional[str] = None,
    ) -> Message:
        return await self.telegram.call(
            "send_message",
            chat_id=self.chat_id,
            text=text,
            reply_markup=reply_markup,
            parse_mode=parse_mode,
            link_preview_options=_NO_PREVIEW,
        )

    async def set_state(self, state: DialogueState) -> None:
        waiting_for, editing_file_id = encode_state(state)
        await self.settings_manager().save_state(self.setting, waiting_for, editing_file_id)
        await self.session.commit()
        self.menu.invalidate(self.chat_id)
        logger.debug("chat %s -> %s", self.chat_id, type(state).__name__)

    async def reset(self) -> None:
        if not isinstance(self.state, Idle):
            await self.set_state(Idle())

    async def show_menu(self) -> None:
        await self.menu.send(self.session, self.setting)

    async def answer_callback(self, text: Optional[str] = None) -> None:
        if self.callback_query is not None:
            await best_effort(self.telegram.run(self.callback_query.answer, text=text), "answerCallbackQuery")

    async def fail(self, text: str) -> None:
        """Откатить работу обработчика, сбросить ожидание и сообщить об ошибке."""

        await self.session.rollback()
        try:
            await self.settings_manager().clear_state(self.chat_id)
            await self.session.commit()
        except Exception:
            logger.exception("Failed to clear dialogue state for chat %s", self.chat_id)
        self.menu.invalidate(self.chat_id)
        await best_effort(self.reply(text), "error reply")


ConversationHandler = Callable[[Conversation], Awaitable[None]]
PTBCallback = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]


def bot_handler(fn: ConversationHandler) -> PTBCallback:
    """Обернуть обработчик Conversation в callback python-telegram-bot."""

    @functools.wraps(fn)
    async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        app = context.bot_data["ctx"]
        chat_id = str(update.effective_chat.id)
        async with app.chat_locks.hold(chat_id):
            await app.schema.ensure_schema()
            async with app.session_factory() as session:
                setting = await UserSettingManager(session).get_or_create(chat_id, app.default_storage)
                await session.commit()

                conv = Conversation(
                    app=app,
                    session=session,
                    chat_id=chat_id,
                    setting=setting,
                    domain=webhook_domain.get() or app.settings.domain,
                    message=update.effective_message,
                    callback_query=update.callback_query,
                )
                if update.callback_query is None and update.message is not None:
                    conv.text = (update.message.text or update.message.caption or "").strip()

                try:
                    await fn(conv)
                    await session.commit()
                except GatewayError as exc:
                    logger.info("chat %s: %s", chat_id, exc.message)
                    await conv.fail(f"❌ {exc.message}")
                except Exception:
                    logger.exception("Unhandled error while processing update for chat %s", chat_id)
                    await conv.fail("❌ Внутренняя ошибка, попробуйте ещё раз")

    return callback
