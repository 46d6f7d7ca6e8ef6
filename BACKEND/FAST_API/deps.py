# Руководство к файлу (FAST_API/deps.py)
# Назначение:
# - Общие зависимости FastAPI: контекст приложения, публичный домен,
#   гарантия рабочей схемы БД перед защищёнными путями и webhook.

from __future__ import annotations

from fastapi import Request

from BACKEND.SEVICES.context import AppContext


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def resolve_domain(request: Request) -> str:
    """Домен из настроек, иначе Host текущего запроса."""

    ctx = get_ctx(request)
    return ctx.settings.domain or request.headers.get("host", "") or request.url.netloc


async def ensure_schema(request: Request) -> None:
    await get_ctx(request).schema.ensure_schema()
