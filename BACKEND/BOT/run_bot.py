"""Руководство к файлу (BACKEND/BOT/run_bot.py)
Назначение:
- Регистрация webhook бота: setWebhook на https://<domain>/webhook
  (с secret_token, если задан IMGBED_WEBHOOK_SECRET).
- Вызывается при старте приложения (IMGBED_REGISTER_WEBHOOK=true) или
  вручную: `python -m BACKEND.BOT.run_bot`.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from telegram import Update

from BACKEND.SEVICES.errors import GatewayError


logger = logging.getLogger("imgbed.bot")


async def register_webhook(ctx) -> bool:
    """setWebhook с повтором при RetryAfter (TelegramGateway)."""

    settings = ctx.settings
    if not settings.domain:
        logger.error("Cannot register webhook: IMGBED_DOMAIN is empty")
        return False
    url = f"https://{settings.domain}/webhook"
    ok = await ctx.telegram.call(
        "set_webhook",
        url=url,
        secret_token=settings.webhook_secret or None,
        allowed_updates=[Update.MESSAGE, Update.CALLBACK_QUERY],
    )
    logger.info("setWebhook %s -> %s", url, ok)
    return ok


async def _main() -> int:
    from BACKEND.FAST_API.config import get_settings
    from BACKEND.SEVICES.context import build_context
    from BACKEND.SEVICES.logging_config import setup_logging

    setup_logging()
    ctx = build_context(get_settings())
    try:
        return 0 if await register_webhook(ctx) else 1
    except GatewayError as exc:
        logger.error("Webhook registration failed: %s", exc.message)
        return 1
    finally:
        await ctx.aclose()


def main() -> None:
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
