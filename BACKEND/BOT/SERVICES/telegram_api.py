"""Руководство к файлу (BACKEND/BOT/SERVICES/telegram_api.py)
Назначение:
- Сборка telegram.Bot (python-telegram-bot) для бота и канала-хранилища.
- TelegramGateway.call()/run(): вызов метода Bot с повтором при сетевых
  ошибках и RetryAfter, перевод ошибок PTB в ошибки шлюза.
Важно:
- BadRequest / Forbidden - «отказ» API без повторов (TelegramApiError):
  вызывающий может отреагировать сам (например, повторить загрузку как документ).
- Транспорт httpx можно подменить (тесты: MockTransport) через HTTPXRequest.
- Без токена Bot не создаётся: любой вызов даёт ConfigurationError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import httpx
from telegram import Bot, File as TelegramFile, Message
from telegram import error as tg_error
from telegram.request import HTTPXRequest

from BACKEND.SEVICES.errors import ConfigurationError, UpstreamError
from BACKEND.SEVICES.retry import RetryAfter, retry_async


logger = logging.getLogger("imgbed.telegram")

T = TypeVar("T")

# Ошибки, на которые повтор не поможет
_REFUSALS = (
    tg_error.BadRequest,
    tg_error.Forbidden,
    tg_error.InvalidToken,
    tg_error.ChatMigrated,
    tg_error.Conflict,
)


@dataclass
class TelegramApiConfig:
    """Настройки доступа к Telegram Bot API."""

    token: str
    base_url: str = "https://api.telegram.org"
    timeout: float = 30.0
    attempts: int = 3
    pool_size: int = 32


class TelegramApiError(UpstreamError):
    """Telegram отказал в вызове или не ответил после всех попыток."""

    def __init__(self, method: str, description: str) -> None:
        super().__init__(f"Telegram {method}: {description}")
        self.method = method
        self.description = description


def _retry_seconds(exc: tg_error.RetryAfter) -> float:
    value = exc.retry_after
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def _request(cfg: TelegramApiConfig, transport: Optional[httpx.AsyncBaseTransport]) -> HTTPXRequest:
    return HTTPXRequest(
        connection_pool_size=cfg.pool_size,
        read_timeout=cfg.timeout,
        write_timeout=cfg.timeout,
        connect_timeout=cfg.timeout,
        httpx_kwargs={"transport": transport} if transport is not None else None,
    )


class TelegramGateway:
    """Bot + повторы и единые ошибки для всех вызовов Bot API."""

    def __init__(
        self,
        cfg: TelegramApiConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cfg = cfg
        self._sleep = sleep
        self._requests: List[HTTPXRequest] = []
        self.bot: Optional[Bot] = None
        if cfg.token:
            base = cfg.base_url.rstrip("/")
            # отдельный запрос для getUpdates PTB требует всегда, даже без поллинга
            self._requests = [_request(cfg, transport), _request(cfg, transport)]
            self.bot = Bot(
                token=cfg.token,
                base_url=f"{base}/bot",
                base_file_url=f"{base}/file/bot",
                request=self._requests[0],
                get_updates_request=self._requests[1],
            )

    @property
    def configured(self) -> bool:
        return self.bot is not None

    def require_bot(self) -> Bot:
        if self.bot is None:
            raise ConfigurationError("Не задан токен Telegram-бота (IMGBED_TG_BOT_TOKEN)")
        return self.bot

    async def call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Вызвать метод Bot по имени: call("send_message", chat_id=..., text=...)."""

        return await self.run(getattr(self.require_bot(), method), *args, **kwargs)

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Выполнить любую корутину PTB (метод Bot, File, CallbackQuery) с повторами."""

        label = getattr(fn, "__name__", "telegram call")

        async def once() -> T:
            try:
                return await fn(*args, **kwargs)
            except tg_error.RetryAfter as exc:
                raise RetryAfter(_retry_seconds(exc), exc.message) from exc
            except _REFUSALS as exc:
                raise TelegramApiError(label, exc.message) from exc

        try:
            return await retry_async(
                once,
                attempts=self._cfg.attempts,
                retry_on=(RetryAfter, tg_error.NetworkError),
                sleep=self._sleep,
                label=f"telegram {label}",
            )
        except (RetryAfter, tg_error.TelegramError) as exc:
            raise TelegramApiError(label, str(exc)) from exc

    async def download(self, file: TelegramFile) -> bytes:
        return bytes(await self.run(file.download_as_bytearray))

    async def aclose(self) -> None:
        await asyncio.gather(*(r.shutdown() for r in self._requests))


def file_id_of(message: Message) -> Optional[str]:
    """file_id вложения из ответа sendPhoto/sendDocument/...; для фото - самый большой размер."""

    if message.photo:
        best = max(message.photo, key=lambda p: (p.file_size or 0, p.width * p.height))
        return best.file_id
    for attachment in (message.document, message.video, message.audio, message.animation, message.voice, message.video_note, message.sticker):
        if attachment is not None:
            return attachment.file_id
    return None
