# Руководство к файлу (ROUTES/webhook.py)
# Назначение:
# - POST /webhook: приём обновлений Telegram и передача в BotDispatcher
#   (Update.de_json + Application.process_update из python-telegram-bot).
# Важно:
# - Если задан webhook_secret, заголовок X-Telegram-Bot-Api-Secret-Token обязан совпасть.
# - Ошибки обработки конкретного обновления не превращаются в 5xx: Telegram
#   иначе будет бесконечно повторять доставку.

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Header, Request

from ..deps import ensure_schema, get_ctx, resolve_domain
from BACKEND.SEVICES.context import AppContext
from BACKEND.SEVICES.errors import ForbiddenError, ValidationError


logger = logging.getLogger("imgbed.fastapi.webhook")

router = APIRouter(tags=["webhook"], dependencies=[Depends(ensure_schema)])


@router.post("/webhook")
async def webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str | None = Header(None),
    ctx: AppContext = Depends(get_ctx),
):
    secret = ctx.settings.webhook_secret
    if secret and not hmac.compare_digest((x_telegram_bot_api_secret_token or "").encode(), secret.encode()):
        logger.warning("Webhook call with wrong secret token")
        raise ForbiddenError("Неверный секретный токен webhook")

    try:
        update: Dict[str, Any] = await request.json()
    except ValueError:
        raise ValidationError("Тело запроса не является JSON")
    if not isinstance(update, dict):
        raise ValidationError("Ожидался объект Update")

    logger.debug("Update %s: %s", update.get("update_id"), [k for k in update if k != "update_id"])
    await request.app.state.dispatcher.handle_update(update, resolve_domain(request))
    return {"ok": True}
