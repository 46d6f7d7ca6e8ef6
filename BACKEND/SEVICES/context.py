# Руководство к файлу (SEVICES/context.py)
# Назначение:
# - AppContext: всё, что живёт столько же, сколько процесс приложения:
#   настройки, движок БД и фабрика сессий, менеджер схемы, кэши с TTL,
#   httpx-клиент, Bot API (python-telegram-bot), адаптеры хранилищ, блокировки чатов.
# - Создаётся в FAST_API/fast_api.create_app() и кладётся в app.state.ctx.
# Важно:
# - Никаких модульных синглтонов: тесты собирают собственный контекст
#   с временной SQLite, фейковым бакетом и MockTransport для Telegram.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from BACKEND.BOT.SERVICES.locks import KeyedLock
from BACKEND.BOT.SERVICES.telegram_api import TelegramApiConfig, TelegramGateway
from BACKEND.DATABASE.schema import SchemaManager
from BACKEND.DATABASE.session import create_engine, create_session_factory
from BACKEND.FAST_API.config import Settings
from BACKEND.SEVICES.auth_service import AuthConfig, AuthService
from BACKEND.SEVICES.cache import TTLCache
from BACKEND.STORAGE.base import StorageBackend, StorageType
from BACKEND.STORAGE.object_store import ObjectStoreBackend
from BACKEND.STORAGE.selector import StorageSelector
from BACKEND.STORAGE.telegram_store import TelegramStoreBackend


logger = logging.getLogger("imgbed.fastapi")


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    schema: SchemaManager
    http: httpx.AsyncClient
    telegram: TelegramGateway
    storage: StorageSelector
    auth: AuthService
    file_cache: TTLCache = field(default_factory=lambda: TTLCache(3600, max_entries=256))
    menu_cache: TTLCache = field(default_factory=lambda: TTLCache(300, max_entries=1024))
    notice_cache: TTLCache = field(default_factory=lambda: TTLCache(3600))
    bing_cache: TTLCache = field(default_factory=lambda: TTLCache(21600))
    chat_locks: KeyedLock = field(default_factory=KeyedLock)

    @property
    def default_storage(self) -> str:
        """Тип хранилища для новых чатов и веб-формы без явного выбора."""

        if self.storage.object_store_available:
            return StorageType.OBJECT_STORE.value
        return StorageType.CHAT_STORE.value

    async def aclose(self) -> None:
        await self.telegram.aclose()
        await self.http.aclose()
        await self.engine.dispose()


def build_context(
    settings: Settings,
    *,
    http: Optional[httpx.AsyncClient] = None,
    telegram_transport: Optional[httpx.AsyncBaseTransport] = None,
    object_store: Optional[StorageBackend] = None,
    s3_client: Any = None,
) -> AppContext:
    """Собрать контекст приложения из настроек.

    object_store / s3_client позволяют подменить бакет (тесты, локальный запуск),
    telegram_transport - транспорт httpx для запросов бота к Bot API.
    """

    engine = create_engine(settings.database_url)
    http = http or httpx.AsyncClient(timeout=30.0)
    telegram = TelegramGateway(
        TelegramApiConfig(token=settings.tg_bot_token, base_url=settings.telegram_api_base),
        transport=telegram_transport,
    )

    if object_store is None and settings.object_store_configured:
        if s3_client is not None:
            object_store = ObjectStoreBackend(s3_client, settings.s3_bucket)
        else:
            object_store = ObjectStoreBackend.from_settings(settings)
    if object_store is None:
        logger.info("Object store is not configured, uploads go to the Telegram channel")

    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        schema=SchemaManager(engine),
        http=http,
        telegram=telegram,
        storage=StorageSelector(TelegramStoreBackend(telegram, settings.storage_chat_id), object_store),
        auth=AuthService(AuthConfig.from_settings(settings)),
        file_cache=TTLCache(settings.file_cache_ttl, max_entries=settings.file_cache_max_entries),
        menu_cache=TTLCache(settings.menu_cache_ttl, max_entries=settings.menu_cache_max_entries),
        notice_cache=TTLCache(settings.notice_cache_ttl),
        bing_cache=TTLCache(settings.bing_cache_ttl),
    )
