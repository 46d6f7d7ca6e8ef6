# Руководство к файлу (ROUTES/system.py)
# Назначение:
# - Публичные системные эндпоинты: /health, /config (лимит загрузки),
#   /bing (фоновые изображения Bing, кэш 6 часов), /favicon.ico.

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, Response

from ..deps import get_ctx
from ..schemas import ConfigResponse, HealthResponse
from BACKEND.SEVICES.context import AppContext
from BACKEND.SEVICES.errors import UpstreamError


logger = logging.getLogger("imgbed.fastapi.system")

router = APIRouter(tags=["system"])

BING_ARCHIVE_URL = "https://cn.bing.com/HPImageArchive.aspx?format=js&idx=0&n=5"
_BING_KEY = "bing"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", response_model=HealthResponse)
async def health(ctx: AppContext = Depends(get_ctx)):
    return HealthResponse(status="ok", timestamp=_now_iso(), version=ctx.settings.version)


@router.get("/config", response_model=ConfigResponse)
async def config(ctx: AppContext = Depends(get_ctx)):
    return ConfigResponse(max_size_mb=ctx.settings.max_size_mb)


@router.get("/favicon.ico")
async def favicon():
    return Response(status_code=204)


@router.get("/bing")
async def bing(response: Response, ctx: AppContext = Depends(get_ctx)):
    cached = ctx.bing_cache.get(_BING_KEY)
    if cached is None:
        try:
            resp = await ctx.http.get(BING_ARCHIVE_URL, timeout=10.0)
            resp.raise_for_status()
            images = resp.json().get("images") or []
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Bing archive request failed: %s", exc)
            raise UpstreamError("Не удалось получить изображения Bing")
        cached = {
            "status": True,
            "message": "ok",
            "data": [{"url": f"https://cn.bing.com{img.get('url', '')}"} for img in images],
        }
        ctx.bing_cache.set(_BING_KEY, cached)
    response.headers["Cache-Control"] = f"public, max-age={int(ctx.bing_cache.ttl)}"
    response.headers["Access-Control-Allow-Origin"] = "*"
    return cached
